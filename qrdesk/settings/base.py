from pathlib import Path
import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _env_bool(name, default="false"):
    return os.getenv(name, default).lower() in ("1", "true", "yes")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "insecure-dev-key")
DEBUG = _env_bool("DJANGO_DEBUG")
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "payments",
    "qrcodes",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "qrdesk.middleware.PaymentsMaintenanceMiddleware",
]

ROOT_URLCONF = "qrdesk.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "qrdesk.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": os.getenv("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.getenv("DB_USER", ""),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", ""),
        "PORT": os.getenv("DB_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# ---------- Email ----------
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.smtp.EmailBackend")
EMAIL_HOST = os.getenv("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = _env_bool("EMAIL_USE_TLS", "true")
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "noreply@qrdesk.local")
EMAIL_FAIL_SILENTLY = _env_bool("EMAIL_FAIL_SILENTLY", "true")

# ---------- Payments ----------
PAYMENTS = {
    "SUBSCRIPTION_DAYS": int(os.getenv("PAYMENTS_SUBSCRIPTION_DAYS", "30")),
    "HTTP_TIMEOUT": float(os.getenv("PAYMENTS_HTTP_TIMEOUT", "30")),
    "SUCCESS_PATH": "/payment/success",
    "FAILURE_PATH": "/payment/failure",
    "CANCEL_PATH": "/payment/cancel",
    # Absolute origin used to build return URLs; request origin when empty
    "SITE_URL": os.getenv("PAYMENTS_SITE_URL", ""),
    "STALE_ORDER_MINUTES": int(os.getenv("PAYMENTS_STALE_ORDER_MINUTES", "120")),
    "ALLOW_ENV_CREDENTIALS": _env_bool("PAYMENTS_ALLOW_ENV_CREDENTIALS", "true"),
}

# Legacy credential path. Store records in ``payment_gateways`` win when present.
PAYMENT_GATEWAY_CREDENTIALS = {
    "stripe": {
        "secretKey": os.getenv("STRIPE_SECRET_KEY", ""),
        "webhookSecret": os.getenv("STRIPE_WEBHOOK_SECRET", ""),
        "publishableKey": os.getenv("STRIPE_PUBLISHABLE_KEY", ""),
    },
    "razorpay": {
        "keyId": os.getenv("RAZORPAY_KEY_ID", ""),
        "keySecret": os.getenv("RAZORPAY_KEY_SECRET", ""),
    },
    "paypal": {
        "clientId": os.getenv("PAYPAL_CLIENT_ID", ""),
        "clientSecret": os.getenv("PAYPAL_CLIENT_SECRET", ""),
    },
    "ccavenue": {
        "merchantId": os.getenv("CCAVENUE_MERCHANT_ID", ""),
        "accessCode": os.getenv("CCAVENUE_ACCESS_CODE", ""),
        "workingKey": os.getenv("CCAVENUE_WORKING_KEY", ""),
    },
}

PAYMENT_GATEWAY_SANDBOX = {
    "stripe": False,
    "razorpay": False,
    "paypal": _env_bool("PAYPAL_SANDBOX", "true"),
    "ccavenue": False,
}

PAYMENTS_MAINTENANCE_MODE = _env_bool("PAYMENTS_MAINTENANCE_MODE")
PAYMENTS_ADMIN_EMAILS = os.getenv("PAYMENTS_ADMIN_EMAILS", "")

# ---------- QR codes ----------
QRCODES_GEO_LOOKUP = _env_bool("QRCODES_GEO_LOOKUP", "true")
QRCODES_GEO_URL = os.getenv("QRCODES_GEO_URL", "https://ipapi.co/{ip}/json/")
QRCODES_GEO_TIMEOUT = float(os.getenv("QRCODES_GEO_TIMEOUT", "5"))

# ---------- Logging ----------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
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
        "level": os.getenv("DJANGO_LOG_LEVEL", "WARNING"),
    },
    "loggers": {
        "payments": {
            "handlers": ["console"],
            "level": os.getenv("PAYMENTS_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "qrcodes": {
            "handlers": ["console"],
            "level": os.getenv("QRCODES_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
