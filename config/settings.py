from pathlib import Path
import os
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

# Django env vars (with backward-compatible fallbacks)
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY") or os.getenv("SECRET_KEY", "dev-key")
_dj_debug = os.getenv("DJANGO_DEBUG")
if _dj_debug is not None:
    DEBUG = _dj_debug.lower() in {"1", "true", "yes", "on"}
else:
    DEBUG = bool(int(os.getenv("DEBUG", "1")))

_allowed_hosts = os.getenv("DJANGO_ALLOWED_HOSTS", "").strip()
if _allowed_hosts:
    ALLOWED_HOSTS = [h.strip() for h in _allowed_hosts.split(",") if h.strip()]
else:
    ALLOWED_HOSTS = ["*"]

CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "http://localhost:8000").split(",")

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_htmx",
    "apps.accounts",
    "apps.restaurants",
    "apps.menu",
    "apps.ordering",
    "apps.payments",
    "apps.alerts.apps.AlertsConfig",
    "apps.leads",
    "apps.notifications",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "django_htmx.middleware.HtmxMiddleware",
]

ROOT_URLCONF = "config.urls"

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
            "libraries": {
                "currency": "apps.ordering.templatetags.currency",
            },
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

# Database: Prefer DATABASE_URL, else use POSTGRES_* vars (UTF-8 client + UTC)
POSTGRES_DB = os.getenv("POSTGRES_DB", "menuhub")
POSTGRES_USER = os.getenv("POSTGRES_USER", "menuhub")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "menuhub")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "127.0.0.1")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
DATABASE_URL = os.getenv("DATABASE_URL", "")

if DATABASE_URL:
    from urllib.parse import urlparse

    u = urlparse(DATABASE_URL)
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": u.path.lstrip("/"),
            "USER": u.username,
            "PASSWORD": u.password,
            "HOST": u.hostname,
            "PORT": u.port or "5432",
            "CONN_MAX_AGE": 600,
            "OPTIONS": {"options": "-c client_encoding=UTF8 -c timezone=UTC"},
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": POSTGRES_DB,
            "USER": POSTGRES_USER,
            "PASSWORD": POSTGRES_PASSWORD,
            "HOST": POSTGRES_HOST,
            "PORT": POSTGRES_PORT,
            "CONN_MAX_AGE": 600,
            "OPTIONS": {"options": "-c client_encoding=UTF8 -c timezone=UTC"},
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en"
TIME_ZONE = os.getenv("TIME_ZONE", "Africa/Nairobi")
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Media (uploads: logos, covers, menu photos)
MEDIA_URL = "/media/"
MEDIA_ROOT = BASE_DIR / "media"

# Custom user model
AUTH_USER_MODEL = "accounts.User"

# Cache (Redis): staff alert feed + rate limits
CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        "OPTIONS": {"CLIENT_CLASS": "django_redis.client.DefaultClient"},
        "KEY_PREFIX": "menuhub",
    }
}

# Cart lives in the session
SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"
SESSION_COOKIE_AGE = int(os.getenv("SESSION_COOKIE_AGE", str(60 * 60 * 24 * 14)))

# Celery
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL") or os.getenv("REDIS_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND") or CELERY_BROKER_URL
CELERY_TIMEZONE = os.getenv("CELERY_TIMEZONE", TIME_ZONE)
CELERY_TASK_ALWAYS_EAGER = False

# Money and phone numbers
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "KES")
DEFAULT_PHONE_REGION = os.getenv("DEFAULT_PHONE_REGION", "KE")
# Share of the total paid upfront on a pre-order ("later")
DEPOSIT_RATE = os.getenv("DEPOSIT_RATE", "0.40")

# Cart limits (per restaurant cart)
CART_LIMITS = {
    "lines_per_cart": int(os.getenv("CART_LINES_PER_CART", "50")),
    "quantity_per_line": int(os.getenv("CART_QUANTITY_PER_LINE", "99")),
}

# Serverless functions holding the Pesapal / Daraja secrets
PAYMENT_FUNCTIONS_URL = os.getenv("PAYMENT_FUNCTIONS_URL", "")
PAYMENT_FUNCTIONS_KEY = os.getenv("PAYMENT_FUNCTIONS_KEY", "")
PAYMENT_FUNCTIONS_TIMEOUT = float(os.getenv("PAYMENT_FUNCTIONS_TIMEOUT", "20"))
# Re-verification of online payments that never called back
PAYMENT_REVERIFY_AFTER_MINUTES = int(os.getenv("PAYMENT_REVERIFY_AFTER_MINUTES", "10"))
PAYMENT_REVERIFY_MAX_AGE_HOURS = int(os.getenv("PAYMENT_REVERIFY_MAX_AGE_HOURS", "48"))

# Staff alert feed
ALERT_FEED_SIZE = int(os.getenv("ALERT_FEED_SIZE", "20"))
ALERT_PULSE_SECONDS = float(os.getenv("ALERT_PULSE_SECONDS", "1.5"))

# Public site (menus, order pages) and dashboard base URLs for links in notifications
SITE_BASE_URL = os.getenv("SITE_BASE_URL", "http://localhost:8000")
DASHBOARD_BASE_URL = os.getenv("DASHBOARD_BASE_URL", "http://localhost:8000")

LOGIN_REDIRECT_URL = "/dashboard/orders/"
LOGOUT_REDIRECT_URL = "/"
LOGIN_URL = "/accounts/login/"

# Logging (prints our app logs at INFO level to console)
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "[%(levelname)s] %(asctime)s %(name)s: %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        }
    },
    "loggers": {
        # Capture all our project app logs (e.g., apps.payments.services)
        "apps": {"handlers": ["console"], "level": os.getenv("APP_LOG_LEVEL", "INFO"), "propagate": False},
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}

# Basic production security (configurable via env)
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"
CSRF_COOKIE_SECURE = os.getenv("CSRF_COOKIE_SECURE", "true").lower() == "true"
SECURE_HSTS_SECONDS = int(os.getenv("SECURE_HSTS_SECONDS", "0"))
