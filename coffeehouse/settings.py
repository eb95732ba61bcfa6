"""
Django settings for the coffeehouse project.

Deployment-specific values come from environment variables; the defaults are
suitable for local development.
"""
import os
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('COFFEEHOUSE_SECRET_KEY', 'django-insecure-coffeehouse-dev-key')

DEBUG = env_bool('COFFEEHOUSE_DEBUG', True)

ALLOWED_HOSTS = [h for h in os.environ.get('COFFEEHOUSE_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h]


INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_spectacular',
    'accounts',
    'catalog',
    'orders',
    'invoices',
    'payment',
    'reviews',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'coffeehouse.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {'context_processors': []},
    },
]

WSGI_APPLICATION = 'coffeehouse.wsgi.application'

# The ORM is unused; all state lives in the collection store below.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = False
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Collection store
STORE_BACKEND = os.environ.get('COFFEEHOUSE_STORE_BACKEND', 'json')  # memory | json | redis
STORE_DATA_DIR = os.environ.get('COFFEEHOUSE_DATA_DIR', str(BASE_DIR / 'data'))
STORE_LOCK_TIMEOUT = float(os.environ.get('COFFEEHOUSE_STORE_LOCK_TIMEOUT', '5'))
STORE_MAX_RETRIES = int(os.environ.get('COFFEEHOUSE_STORE_MAX_RETRIES', '5'))

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DB = os.environ.get('REDIS_DB', '0')
REDIS_PREFIX = os.environ.get('REDIS_PREFIX', 'coffeehouse')


# Billing
TAX_RATE = Decimal(os.environ.get('COFFEEHOUSE_TAX_RATE', '0.08'))


# Authentication tokens
AUTH_TOKEN_SALT = 'coffeehouse.auth'
AUTH_TOKEN_MAX_AGE = int(os.environ.get('COFFEEHOUSE_TOKEN_MAX_AGE', str(12 * 60 * 60)))
PASSWORD_MIN_LENGTH = 8


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'coffeehouse.authentication.TokenAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'UNAUTHENTICATED_USER': None,
    'EXCEPTION_HANDLER': 'coffeehouse.exceptions.exception_handler',
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Coffee Counter API',
    'DESCRIPTION': 'Catalog, orders, invoices and payments for a coffee counter',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
}


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('COFFEEHOUSE_LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}
