import logging

from celery import shared_task

from catalog.config import ImageFetchConfig, SourceConfig
from catalog.images import run_image_batch
from catalog.sync import run_import

logger = logging.getLogger(__name__)


@shared_task
def import_products():
    result = run_import(SourceConfig.from_settings())
    if not result.ok:
        logger.error("Scheduled import finished with errors: %s", result.error)
    return result.as_dict()


@shared_task
def fetch_product_images(limit=None):
    result = run_image_batch(limit, config=ImageFetchConfig.from_settings())
    return result.as_dict()
