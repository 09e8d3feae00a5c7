from pathlib import Path
import os
from dotenv import load_dotenv

from payments.conf import resolve_callback_url

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# === env ===
load_dotenv(BASE_DIR / ".env")
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
DEBUG = os.getenv("DEBUG", "True") == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",")

# "production" on the live deployment; Vercel sets VERCEL_ENV itself
DEPLOY_ENV = (os.getenv("DJANGO_ENV") or os.getenv("VERCEL_ENV") or "development").lower()


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "orders",
    "payments.apps.PaymentsConfig",
]

MIDDLEWARE = [
    "bakery.middleware.RequestLoggingMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "bakery.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "bakery.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "Africa/Kampala"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"


# === PesaPal ===
PESAPAL = {
    "BASE_URL": os.getenv("PESAPAL_BASE_URL", "https://cybqa.pesapal.com/pesapalv3"),
    "CONSUMER_KEY": os.getenv("PESAPAL_CONSUMER_KEY", ""),
    "CONSUMER_SECRET": os.getenv("PESAPAL_CONSUMER_SECRET", ""),
    "IPN_ID": os.getenv("PESAPAL_IPN_ID", ""),
    "CALLBACK_URL": resolve_callback_url(DEPLOY_ENV, os.getenv("PESAPAL_CALLBACK_URL")),
    # "trust" marks the order completed on any IPN; "verify" asks PesaPal first
    "STATUS_POLICY": os.getenv("PESAPAL_STATUS_POLICY", "trust"),
    "TOKEN_TIMEOUT": float(os.getenv("PESAPAL_TOKEN_TIMEOUT", "15")),
    "SUBMIT_TIMEOUT": float(os.getenv("PESAPAL_SUBMIT_TIMEOUT", "30")),
    "STATUS_TIMEOUT": float(os.getenv("PESAPAL_STATUS_TIMEOUT", "15")),
}


# === logging ===
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}
