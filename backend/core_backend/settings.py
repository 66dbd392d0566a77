"""
Django settings for the SyncStay order hub.

Configuration comes from the environment. There is no database: every order
lives in process memory, so the hub must run as a single ASGI process.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_list(name, default=""):
    return [part.strip() for part in os.environ.get(name, default).split(",") if part.strip()]


SECRET_KEY = os.environ.get("SECRET_KEY", "django-insecure-syncstay-dev-key")

DEBUG = env_bool("DEBUG", True)

ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "*")

# Port used by `manage.py runhub`
PORT = int(os.environ.get("PORT", 3000))

INSTALLED_APPS = [
    "channels",
    "core_backend",
    "orders",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "core_backend.urls"

ASGI_APPLICATION = "core_backend.asgi.application"

# Orders are never persisted
DATABASES = {}

# In-memory layer: orders are process-local, so fan-out is too
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    },
}

ORDER_HUB = {
    "CANCEL_WINDOW_SECONDS": float(os.environ.get("ORDER_HUB_CANCEL_WINDOW_SECONDS", 20)),
    "AUTO_COOK_SECONDS": float(os.environ.get("ORDER_HUB_AUTO_COOK_SECONDS", 30)),
    "REMOVAL_DELAY_SECONDS": float(os.environ.get("ORDER_HUB_REMOVAL_DELAY_SECONDS", 5)),
    "STALE_ORDER_TTL_SECONDS": float(os.environ.get("ORDER_HUB_STALE_ORDER_TTL_SECONDS", 24 * 60 * 60)),
    "SWEEP_INTERVAL_SECONDS": float(os.environ.get("ORDER_HUB_SWEEP_INTERVAL_SECONDS", 60 * 60)),
}

LANGUAGE_CODE = "fr-fr"

TIME_ZONE = os.environ.get("TIME_ZONE", "Europe/Paris")

USE_I18N = True

USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "orders": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "core_backend": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
