from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.InMemoryStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
    'images': {
        'BACKEND': 'django.core.files.storage.InMemoryStorage',
    },
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

AIRTABLE_API_URL = 'https://api.airtable.test/v0'
AIRTABLE_API_TOKEN = 'pat-test-token'
AIRTABLE_BASE_ID = 'appTEST'
AIRTABLE_TABLE_NAME = 'Products'

CATALOG_IMAGE_MAX_BYTES = 1024
CATALOG_IMAGE_FETCH_CONCURRENCY = 2

CATALOG_ADMIN_USERNAME = 'operator'
CATALOG_ADMIN_PASSWORD = 'secret'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {'null': {'class': 'logging.NullHandler'}},
    'root': {'handlers': ['null']},
}
