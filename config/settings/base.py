"""
Django settings for the Storefront platform - Base Configuration
Order payment lifecycle, promotions and loyalty back office.
"""

import os
from pathlib import Path
from typing import Any

# ===============================================================================
# CORE DJANGO SETTINGS
# ===============================================================================

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Application definition
DJANGO_APPS: list[str] = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
]

THIRD_PARTY_APPS: list[str] = [
    "rest_framework",
    "django_q",
]

LOCAL_APPS: list[str] = [
    "apps.common",
    "apps.audit",  # 📜 Append-only audit trail
    "apps.products",  # 📦 Catalog & inventory counters
    "apps.cart",
    "apps.orders",
    "apps.promotions",  # 🎟️ Coupons & loyalty ledger
    "apps.integrations",  # 🔌 Payment provider callbacks
    "apps.api",
]

INSTALLED_APPS: list[str] = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

MIDDLEWARE: list[str] = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
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

WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

# ===============================================================================
# DATABASE CONFIGURATION
# ===============================================================================

DATABASES: dict[str, dict[str, Any]] = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DB_NAME", "storefront"),
        "USER": os.environ.get("DB_USER", "storefront"),
        "PASSWORD": os.environ.get("DB_PASSWORD", "development_password"),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
        "CONN_MAX_AGE": 60,
        "OPTIONS": {
            "application_name": "storefront_platform",
        },
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ===============================================================================
# AUTHENTICATION
# ===============================================================================

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 12}},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# ===============================================================================
# INTERNATIONALIZATION & LOCALIZATION
# ===============================================================================

LANGUAGE_CODE = "tr"
TIME_ZONE = "Europe/Istanbul"
USE_I18N = True
USE_TZ = True

LANGUAGES = [
    ("tr", "Türkçe"),
    ("en", "English"),
]

# ===============================================================================
# STATIC FILES
# ===============================================================================

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# ===============================================================================
# CACHE CONFIGURATION
# ===============================================================================

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.db.DatabaseCache",
        "LOCATION": "django_cache_table",
        "TIMEOUT": 300,
        "KEY_PREFIX": "storefront",
    }
}

# Cached page renderings dropped after a payment callback changes order state
PAGE_CACHE_KEY_PREFIX = "page"
ORDER_STATE_CACHED_PAGES: list[str] = [
    "/account/orders/",
    "/account/loyalty/",
    "/cart/",
    "/admin/orders/",
    "/admin/loyalty/",
]

# ===============================================================================
# SECURITY
# ===============================================================================

SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = "DENY"

# Only honor proxy headers from these CIDRs (empty = REMOTE_ADDR only)
IPWARE_TRUSTED_PROXY_LIST: list[str] = [
    proxy.strip() for proxy in os.environ.get("IPWARE_TRUSTED_PROXY_LIST", "").split(",") if proxy.strip()
]

RATELIMIT_ENABLE = True
RATELIMIT_USE_CACHE = "default"

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY")
if not SECRET_KEY:
    # Development fallback - never use this in production
    import warnings

    warnings.warn(
        "🚨 SECURITY WARNING: Using default SECRET_KEY. "
        "Set DJANGO_SECRET_KEY environment variable for production!",
        UserWarning,
        stacklevel=2,
    )
    SECRET_KEY = "django-insecure-dev-key-only-change-in-production-or-tests"  # noqa: S105


def validate_production_secret_key() -> None:
    """Validate SECRET_KEY meets production security requirements"""
    if SECRET_KEY and SECRET_KEY.startswith("django-insecure-"):
        raise ValueError("🔥 CRITICAL SECURITY ERROR: Cannot use insecure SECRET_KEY in production!")


# ===============================================================================
# DJANGO REST FRAMEWORK
# ===============================================================================

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "coupon_validate": "60/min",
        "loyalty_redeem": "10/min",
        "admin_ops": "120/min",
    },
}

# ===============================================================================
# BACKGROUND TASKS (django-q)
# ===============================================================================

Q_CLUSTER = {
    "name": "storefront-cluster",
    "workers": int(os.environ.get("Q_WORKERS", "2")),
    "timeout": 120,
    "retry": 180,
    "orm": "default",
    "catch_up": False,
}

# ===============================================================================
# PAYMENT PROVIDER (PayTR)
# ===============================================================================

# Absence of any credential disables the payment callback (HTTP 500 "missing config")
PAYTR_MERCHANT_ID = os.environ.get("PAYTR_MERCHANT_ID")
PAYTR_MERCHANT_KEY = os.environ.get("PAYTR_MERCHANT_KEY")
PAYTR_MERCHANT_SALT = os.environ.get("PAYTR_MERCHANT_SALT")

# ===============================================================================
# STALE ORDER RECLAIM
# ===============================================================================

STALE_ORDER_DEFAULT_MINUTES = 30
STALE_ORDER_MIN_MINUTES = 5
STALE_ORDER_MAX_MINUTES = 1440
STALE_ORDER_BATCH_SIZE = 200

# ===============================================================================
# LOYALTY PROGRAM
# ===============================================================================

# 5 points for every full 100.00 TRY (10000 kuruş) paid
LOYALTY_POINTS_PER_BLOCK = 5
LOYALTY_ACCRUAL_BLOCK = 10000

# Minimum lifetime points per tier
LOYALTY_TIER_THRESHOLDS: dict[str, int] = {
    "SILVER": 750,
    "GOLD": 2000,
    "PLATINUM": 5000,
}

# Allowed redemption denominations: points -> percent discount of the issued coupon
LOYALTY_REDEEM_OPTIONS: dict[int, int] = {
    100: 5,
    250: 10,
    500: 20,
    1000: 40,
}

LOYALTY_COUPON_EXPIRY_DAYS = 30
LOYALTY_COUPON_CODE_ATTEMPTS = 6

# ===============================================================================
# A/B EXPERIMENTS
# ===============================================================================

AB_TESTS: dict[str, Any] = {
    "enabled": False,
    "experiments": {},
}

# Experiment whose variant is tagged onto purchase events
AB_PURCHASE_EXPERIMENT_KEY = "home_hero_copy"

# ===============================================================================
# LOGGING
# ===============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
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
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "apps": {
            "handlers": ["console"],
            "level": os.environ.get("APP_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
