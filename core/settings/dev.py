from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['localhost', '127.0.0.1']

CATALOG_ADMIN_USERNAME = CATALOG_ADMIN_USERNAME or 'admin'  # noqa: F405
CATALOG_ADMIN_PASSWORD = CATALOG_ADMIN_PASSWORD or 'admin'  # noqa: F405
