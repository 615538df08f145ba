from .base import *  # noqa: F401,F403
from .base import env

DEBUG = False

SECRET_KEY = env.str('SECRET_KEY')  # no fallback outside dev

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS')

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': env.str('POSTGRES_DB', 'catalog_sync'),
        'USER': env.str('POSTGRES_USER', 'postgres'),
        'PASSWORD': env.str('POSTGRES_PASSWORD', 'postgres'),
        'HOST': env.str('POSTGRES_HOST', 'db'),
        'PORT': env.str('POSTGRES_PORT', '5432'),
    }
}

# Product images live in S3
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
    'images': {
        'BACKEND': 'storages.backends.s3boto3.S3Boto3Storage',
        'OPTIONS': {
            'bucket_name': env.str('IMAGE_BUCKET_NAME'),
            'file_overwrite': True,
            'querystring_auth': False,
        },
    },
}

AIRTABLE_API_TOKEN = env.str('AIRTABLE_API_TOKEN')
AIRTABLE_BASE_ID = env.str('AIRTABLE_BASE_ID')
AIRTABLE_TABLE_NAME = env.str('AIRTABLE_TABLE_NAME')

CATALOG_ADMIN_USERNAME = env.str('CATALOG_ADMIN_USERNAME')
CATALOG_ADMIN_PASSWORD = env.str('CATALOG_ADMIN_PASSWORD')

# Security
SECURE_SSL_REDIRECT = env.bool('SECURE_SSL_REDIRECT', True)
SECURE_HSTS_SECONDS = env.int('SECURE_HSTS_SECONDS', 31536000)
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
