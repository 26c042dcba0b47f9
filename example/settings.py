import os
from pathlib import Path
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

DEBUG = os.getenv("DEBUG", "False") == "True"

SECRET_KEY = os.getenv("SECRET_KEY", "chrono-example-insecure-key")

ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv("DJANGO_ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",")
    if host.strip()
]

INSTALLED_APPS = []

MIDDLEWARE = [
    "chrono.middleware.django_timer.TimingMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "example.urls"

DATABASES = {}

# Timing middleware
CHRONO = {
    "ENABLED": os.getenv("CHRONO_ENABLED", "True") == "True",
    "WARNING_THRESHOLD": timedelta(milliseconds=200),
    "ERROR_THRESHOLD": timedelta(seconds=1),
    "LOG_ALL_REQUESTS": True,
    "SKIP_PATHS": ["/health"],
    "LOGGER": "chrono",
    "COLORIZE": True,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
        "timing": {
            "level": "INFO",
            "class": "chrono.log_handlers.TimingStreamHandler",
            "formatter": "bare",
        },
    },
    "formatters": {
        "simple": {
            "format": "{levelname} {asctime} {message}",
            "style": "{",
        },
        "bare": {
            "format": "{message}",
            "style": "{",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "chrono": {
            "handlers": ["timing"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

APPEND_SLASH = False
