# storefront/settings.py
"""
Django settings for the storefront project.

Values come from storefront.core.config so the FastAPI app, the management
commands and the test suite all read one configuration.
"""
from storefront.core.config import settings as app_settings

BASE_DIR = app_settings.paths.base_dir

SECRET_KEY = app_settings.secret_key
DEBUG = app_settings.debug
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "storefront.shop",
]

DATABASES = {
    "default": app_settings.database.as_django(),
}

CACHES = {
    "default": app_settings.cache.as_django(),
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = app_settings.time_zone
LANGUAGE_CODE = "en-us"
USE_I18N = False

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "loggers": {
        "django.db.backends": {
            "handlers": ["console"],
            "level": "DEBUG" if app_settings.sql_echo else "WARNING",
            "propagate": False,
        },
    },
}
