from django.apps import AppConfig
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    name = "core_backend"

    def ready(self):
        """Warn about configurations the in-memory hub cannot support"""
        backend = settings.CHANNEL_LAYERS.get("default", {}).get("BACKEND", "")
        if "InMemoryChannelLayer" not in backend:
            logger.warning(
                f"Channel layer {backend!r} spans processes, but orders are kept in process memory; "
                "run a single hub process"
            )
