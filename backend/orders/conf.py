"""
Order hub configuration.

Reads the ORDER_HUB dict from Django settings lazily, falling back to the
defaults below for any missing key.
"""
from typing import Any, Dict, Optional
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    # Seconds after creation during which the customer may cancel
    "CANCEL_WINDOW_SECONDS": 20,
    # Seconds after creation before a queued order starts cooking
    "AUTO_COOK_SECONDS": 30,
    # Grace period before a fully cancelled order leaves the active set
    "REMOVAL_DELAY_SECONDS": 5,
    # Orders untouched for this long are swept
    "STALE_ORDER_TTL_SECONDS": 24 * 60 * 60,
    "SWEEP_INTERVAL_SECONDS": 60 * 60,
    "GROUP_NAME": "order_hub",
}


class HubSettings:
    """
    A lazy view over settings.ORDER_HUB.

    Values are resolved on first attribute access so tests can override
    settings before the hub is built.
    """

    _instance: Optional["HubSettings"] = None

    def __new__(cls) -> "HubSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __getattr__(self, name: str) -> Any:
        if name not in DEFAULTS:
            raise AttributeError(f"'HubSettings' object has no attribute '{name}'")

        overrides = getattr(settings, "ORDER_HUB", {}) or {}
        value = overrides.get(name, DEFAULTS[name])

        if name.endswith("_SECONDS"):
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ImproperlyConfigured(f"ORDER_HUB['{name}'] must be a number, got {value!r}")
            if value < 0:
                raise ImproperlyConfigured(f"ORDER_HUB['{name}'] must not be negative")
        return value

    def as_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in DEFAULTS}


hub_settings = HubSettings()
