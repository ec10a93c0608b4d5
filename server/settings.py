"""
Django settings for the program catalog project.

Only the pieces the catalog and its import pipeline need are configured:
the ORM (sqlite by default, Postgres via environment), the catalog app and
logging for the `program_etl` logger. There is no HTTP surface.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-program-catalog-key")

DEBUG = (os.getenv("DJANGO_DEBUG", "false") or "false").strip().lower() in ("1", "true", "yes")

ALLOWED_HOSTS = [h.strip() for h in (os.getenv("DJANGO_ALLOWED_HOSTS", "") or "").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "catalog",
]

MIDDLEWARE = []

ROOT_URLCONF = "server.urls"

DB_ENGINE = (os.getenv("DJANGO_DB_ENGINE", "sqlite") or "sqlite").strip().lower()

if DB_ENGINE in ("postgres", "postgresql"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "programs"),
            "USER": os.getenv("POSTGRES_USER", "postgres"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "etl": {"format": "%(asctime)s | %(levelname)s | %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "etl"},
    },
    "loggers": {
        "program_etl": {
            "handlers": ["console"],
            "level": os.getenv("PROGRAM_ETL_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
