"""
Django settings for spiritmatch project.

Values that differ between environments are read from environment variables.
"""
import os
from pathlib import Path

import firebase_admin
from firebase_admin import credentials


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-dev-only-change-me')

DEBUG = _env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h]


INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.staticfiles',
    'core',
    'quiz',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'spiritmatch.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'spiritmatch.wsgi.application'


# Sessions are the only relational data; assessments live in Firestore.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# The per-session quiz lock lives in this cache. LocMemCache is private to
# one process, so deployments with several workers set QUIZ_CACHE_BACKEND=db
# (after `manage.py createcachetable`) to share the lock between them.
if os.environ.get('QUIZ_CACHE_BACKEND') == 'db':
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.db.DatabaseCache',
            'LOCATION': 'spiritmatch_cache',
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'spiritmatch',
        }
    }

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Firebase
FIREBASE_CREDENTIALS_PATH = os.environ.get('FIREBASE_CREDENTIALS_PATH')

if FIREBASE_CREDENTIALS_PATH and not firebase_admin._apps:
    firebase_admin.initialize_app(credentials.Certificate(FIREBASE_CREDENTIALS_PATH))


# Gemini
GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY', '')
GEMINI_API_URL = os.environ.get('GEMINI_API_URL', 'https://generativelanguage.googleapis.com/v1beta/models')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.0-flash')
GEMINI_TIMEOUT = float(os.environ.get('GEMINI_TIMEOUT', '15'))


# Quiz flow
QUIZ_QUESTION_COUNT = int(os.environ.get('QUIZ_QUESTION_COUNT', '7'))
QUIZ_MIN_RESPONSE_LENGTH = int(os.environ.get('QUIZ_MIN_RESPONSE_LENGTH', '10'))
QUIZ_ENABLE_GUESSING = _env_bool('QUIZ_ENABLE_GUESSING', True)
QUIZ_PERSIST_IN_BACKGROUND = _env_bool('QUIZ_PERSIST_IN_BACKGROUND', True)


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'core': {
            'handlers': ['console'],
            'level': os.environ.get('QUIZ_LOG_LEVEL', 'INFO'),
        },
        'quiz': {
            'handlers': ['console'],
            'level': os.environ.get('QUIZ_LOG_LEVEL', 'INFO'),
        },
    },
}
