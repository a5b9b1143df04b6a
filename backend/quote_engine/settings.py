"""
Django settings for the quote engine project.

Only what the pricing API needs: no ORM models, no sessions, no templates.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-quote-engine-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [h.strip() for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "pricing",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "quote_engine.urls"
WSGI_APPLICATION = "quote_engine.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "Africa/Johannesburg"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
}

# Pricing inputs. MARGIN_PERCENT (0-100) takes precedence over MARGIN_RATE when set.
QUOTE_PRICING = {
    "MARGIN_RATE": os.environ.get("QUOTE_MARGIN_RATE", "0.25"),
    "MARGIN_PERCENT": os.environ.get("QUOTE_MARGIN_PERCENT"),
    "VAT_RATE": os.environ.get("QUOTE_VAT_RATE", "0.15"),
    "DELIVERY_FEE_FLAT": os.environ.get("QUOTE_DELIVERY_FEE", "99"),
    "DELIVERY_FREE_THRESHOLD": os.environ.get("QUOTE_DELIVERY_FREE_THRESHOLD", "1000"),
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "pricing": {
            "level": os.environ.get("QUOTE_LOG_LEVEL", "INFO"),
        },
    },
}
