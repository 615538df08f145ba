import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings.dev')

app = Celery('core')

# All celery-related configuration keys use the CELERY_ prefix in settings.
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks()
