from pathlib import Path
import json
import os
BASE_DIR = Path(__file__).resolve().parent.parent
from dotenv import load_dotenv
load_dotenv()
SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-mesob-crash-local-development-key-change-me")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

ALLOWED_HOSTS = [h for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'accounts',
    'wallets',
    'crash',
    'notifications',
]


MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'mesob.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'mesob.wsgi.application'
ASGI_APPLICATION = 'mesob.asgi.application'

# SQLite writers queue on BEGIN IMMEDIATE instead of failing on lock upgrade
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv("DATABASE_PATH", str(BASE_DIR / 'db.sqlite3')),
        'OPTIONS': {
            'timeout': int(os.getenv("DATABASE_TIMEOUT", "20")),
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': str(BASE_DIR / 'test_db.sqlite3'),
        },
    }
}


# Telegram Mini App
TELEGRAM_BOT_TOKEN = os.getenv("BOT_TOKEN", "")
TMA_URL = os.getenv("TMA_URL", "https://t.me/MesobEarnBot/MesobCrash")
TMA_ORIGIN = os.getenv("TMA_ORIGIN", "https://mesob-crash-tma.vercel.app")
TELEGRAM_AUTH_MAX_AGE = int(os.getenv("TELEGRAM_AUTH_MAX_AGE", "86400"))  # seconds
TELEGRAM_API_BASE_URL = "https://api.telegram.org"
TELEGRAM_WEBHOOK_SECRET = os.getenv("TELEGRAM_WEBHOOK_SECRET", "")

IDENTITY_VERIFIER = os.getenv("IDENTITY_VERIFIER", "accounts.identity.TelegramInitDataVerifier")
SESSION_TOKEN_MAX_AGE = int(os.getenv("SESSION_TOKEN_MAX_AGE", "3600"))  # seconds, <= 1h

# Money is stored in minor units (santim)
CURRENCY_CODE = os.getenv("CURRENCY_CODE", "ETB")
ACCOUNT_SEED_BALANCE = int(os.getenv("ACCOUNT_SEED_BALANCE", "0"))

# Crash game policy
CRASH_FRAUD_TOLERANCE = os.getenv("CRASH_FRAUD_TOLERANCE", "0.05")
CRASH_MAX_MULTIPLIER = os.getenv("CRASH_MAX_MULTIPLIER", "500")
CRASH_MIN_BET = int(os.getenv("CRASH_MIN_BET", "1"))
CRASH_MAX_BET = int(os.getenv("CRASH_MAX_BET", "10000000"))
CRASH_MULTIPLIER_ORACLE = os.getenv("CRASH_MULTIPLIER_ORACLE", "crash.oracle.LinearOracle")
# JSON kwargs for the oracle class; {} keeps that class's own defaults
CRASH_MULTIPLIER_PARAMS = json.loads(os.getenv("CRASH_MULTIPLIER_PARAMS", "{}"))
CRASH_STALE_WAGER_SECONDS = int(os.getenv("CRASH_STALE_WAGER_SECONDS", "3600"))

# Outbound notifications
NOTIFY_ENABLED = os.getenv("NOTIFY_ENABLED", "true").lower() == "true"
NOTIFY_WORKERS = int(os.getenv("NOTIFY_WORKERS", "4"))
NOTIFY_TIMEOUT = float(os.getenv("NOTIFY_TIMEOUT", "5"))
NOTIFY_MAX_PENDING = int(os.getenv("NOTIFY_MAX_PENDING", "1000"))


CORS_ALLOWED_ORIGINS = [o for o in TMA_ORIGIN.split(",") if o]

CORS_ALLOW_HEADERS = [
    "accept",
    "authorization",
    "content-type",
]

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'accounts.authentication.SessionTokenAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'UNAUTHENTICATED_USER': None,
    'EXCEPTION_HANDLER': 'mesob.exceptions.api_exception_handler',
}


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

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
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
]


# Internationalization
# https://docs.djangoproject.com/en/5.2/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.2/howto/static-files/

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / "staticfiles"
# Default primary key field type
# https://docs.djangoproject.com/en/5.2/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
