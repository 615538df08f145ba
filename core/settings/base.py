from pathlib import Path

from environs import Env

env = Env()
env.read_env(recurse=False)

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = env.str('SECRET_KEY', 'django-insecure-3q0c!w8v#n2l6k$catalog-sync-dev-only-key')

DEBUG = env.bool('DEBUG', False)

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', [])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'catalog',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

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

WSGI_APPLICATION = 'core.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
MEDIA_ROOT = env.str('MEDIA_ROOT', str(BASE_DIR / 'media'))

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
    'images': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
        'OPTIONS': {
            'location': env.str('IMAGE_STORAGE_ROOT', str(BASE_DIR / 'media' / 'images')),
        },
    },
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'long': {
            'format': '[{asctime} {levelname} {name}:{lineno}] {message}',
            'datefmt': '%Y-%m-%dT%H:%M:%S',
            'style': '{',
        },
    },
    'handlers': {
        'stream': {
            'class': 'logging.StreamHandler',
            'formatter': 'long',
        },
    },
    'root': {
        'handlers': ['stream'],
        'level': env.str('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'catalog': {
            'level': env.str('CATALOG_LOG_LEVEL', 'INFO'),
        },
    },
}

# Celery
CELERY_BROKER_URL = env.str('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = CELERY_BROKER_URL
CELERY_BEAT_SCHEDULE = {
    'import-products-hourly': {
        'task': 'catalog.tasks.import_products',
        'schedule': 3600,
    },
    'fetch-product-images-every-5-min': {
        'task': 'catalog.tasks.fetch_product_images',
        'schedule': 300,
    },
}

# Airtable source
AIRTABLE_API_URL = env.str('AIRTABLE_API_URL', 'https://api.airtable.com/v0')
AIRTABLE_API_TOKEN = env.str('AIRTABLE_API_TOKEN', '')
AIRTABLE_BASE_ID = env.str('AIRTABLE_BASE_ID', '')
AIRTABLE_TABLE_NAME = env.str('AIRTABLE_TABLE_NAME', '')
AIRTABLE_PAGE_SIZE = env.int('AIRTABLE_PAGE_SIZE', 100)
AIRTABLE_RATE_LIMIT = env.int('AIRTABLE_RATE_LIMIT', 5)
AIRTABLE_TIMEOUT = env.float('AIRTABLE_TIMEOUT', 30.0)

# Catalog pipeline
CATALOG_IMPORT_BATCH_SIZE = env.int('CATALOG_IMPORT_BATCH_SIZE', 100)
CATALOG_IMAGE_BATCH_LIMIT = env.int('CATALOG_IMAGE_BATCH_LIMIT', 20)
CATALOG_IMAGE_MAX_BYTES = env.int('CATALOG_IMAGE_MAX_BYTES', 10 * 1024 * 1024)
CATALOG_IMAGE_FETCH_TIMEOUT = env.float('CATALOG_IMAGE_FETCH_TIMEOUT', 30.0)
CATALOG_IMAGE_FETCH_CONCURRENCY = env.int('CATALOG_IMAGE_FETCH_CONCURRENCY', 4)
CATALOG_IMAGE_RETRY_FAILED = env.bool('CATALOG_IMAGE_RETRY_FAILED', False)

# Operator credentials for the HTTP import trigger
CATALOG_ADMIN_USERNAME = env.str('CATALOG_ADMIN_USERNAME', '')
CATALOG_ADMIN_PASSWORD = env.str('CATALOG_ADMIN_PASSWORD', '')
