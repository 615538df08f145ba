import logging
import time

from django.db import DatabaseError, transaction
from django.utils import timezone
from more_itertools import chunked

from catalog.exceptions import SourceFetchError
from catalog.models import ImageFetchState, Product, ProductImage, SyncRun
from catalog.results import ImportResult
from catalog.sources.airtable_source import AirtableSource
from catalog.transforms import MAPPED_COLUMNS, deduplicate, transform_record, validate_record

logger = logging.getLogger(__name__)

IMAGE_COLUMNS = ('image_ref', 'image_refs', 'image_key', 'image_state', 'image_error')
UPDATE_FIELDS = MAPPED_COLUMNS + ('raw',) + IMAGE_COLUMNS + ('updated_at',)
# Filled in by the image scheduler, carried over while references are unchanged
FETCHED_IMAGE_FIELDS = ('blob_key', 'content_type', 'width', 'height', 'variant')
# A single bad row can surface as either, depending on the backend
WRITE_ERRORS = (DatabaseError, OverflowError)


class ProductImporter:
    """
    Pulls every page from the source and upserts the products it describes.

    Each page is written as it arrives, in atomic batches; a failed batch
    does not undo the ones before it and re-running the import is safe.
    """

    def __init__(self, source, batch_size=100):
        self.source = source
        self.batch_size = max(1, batch_size)

    def run(self) -> ImportResult:
        logger.info("Starting product import")
        started = time.monotonic()
        result = ImportResult()
        sync_run = SyncRun.objects.create(kind=SyncRun.Kind.IMPORT)

        seen = set()
        cursor = None
        try:
            while True:
                page = self.source.list_page(cursor)
                result.records_fetched += len(page.records)
                self._import_page(page.records, seen, result)
                cursor = page.next_cursor
                if not cursor:
                    break
        except SourceFetchError as exc:
            logger.error("Aborting import after %d records: %s", result.records_fetched, exc)
            result.fail(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error during import")
            result.fail(f"Unexpected error: {exc}")

        result.duration_seconds = round(time.monotonic() - started, 3)
        sync_run.finish(result.as_dict(), error=result.error)
        logger.info("Import complete: %s", result.as_dict())
        return result

    def _import_page(self, records, seen, result):
        payloads = []
        for record in records:
            is_valid, reason = validate_record(record)
            if not is_valid:
                logger.warning("Skipping invalid record: %s", reason)
                result.skipped_invalid += 1
                continue
            payloads.append(transform_record(record))

        unique = deduplicate(payloads, seen)
        if len(unique) < len(payloads):
            logger.debug("Skipping %d duplicate skus", len(payloads) - len(unique))
            result.skipped_duplicate += len(payloads) - len(unique)

        for batch in chunked(unique, self.batch_size):
            try:
                products, images = self.write_batch(batch)
            except WRITE_ERRORS as exc:
                logger.error(
                    "Failed to write batch of %d products (%s..%s), retrying one by one: %s",
                    len(batch), batch[0]['sku'], batch[-1]['sku'], exc,
                )
                result.batches_failed += 1
                products, images = self._write_each(batch, result)
            result.products_upserted += products
            result.images_upserted += images

    def _write_each(self, batch, result):
        products = images = 0
        for payload in batch:
            try:
                written, written_images = self.write_batch([payload])
            except WRITE_ERRORS as exc:
                logger.error("Skipping product %s: %s", payload['sku'], exc)
                result.records_failed += 1
                result.fail(f"Write failed for {payload['sku']}: {exc}")
                continue
            products += written
            images += written_images
        return products, images

    @transaction.atomic
    def write_batch(self, batch):
        """Upserts one batch of payloads together with their image rows."""
        skus = [p['sku'] for p in batch]
        now = timezone.now()

        # Bulk fetch existing rows (1 query instead of N)
        existing = Product.objects.in_bulk(skus)
        previous_images = {}
        for image in ProductImage.objects.filter(product_id__in=skus):
            previous_images[(image.product_id, image.position)] = image

        to_create = []
        to_update = []
        new_images = []

        for payload in batch:
            sku = payload['sku']
            images = payload['images']
            refs = [img['source_ref'] for img in images]
            fields = {column: payload[column] for column in MAPPED_COLUMNS}

            product = existing.get(sku)
            if product is None:
                product = Product(sku=sku, raw=payload['raw'], created_at=now, **fields)
                to_create.append(product)
                refs_changed = True
            else:
                for column, value in fields.items():
                    setattr(product, column, value)
                product.raw = payload['raw']
                product.updated_at = now
                to_update.append(product)
                refs_changed = product.image_refs != refs

            if refs_changed:
                if product.image_key or product.image_state != ImageFetchState.PENDING:
                    logger.info("Image reference changed for %s, resetting to pending", sku)
                product.image_ref = images[0]['source_url'] if images else ''
                product.image_refs = refs
                product.image_key = None
                product.image_state = ImageFetchState.PENDING
                product.image_error = ''

            for img in images:
                row = ProductImage(product_id=sku, created_at=now, **img)
                previous = None if refs_changed else previous_images.get((sku, img['position']))
                if previous is not None:
                    for field in FETCHED_IMAGE_FIELDS:
                        setattr(row, field, getattr(previous, field))
                new_images.append(row)

        # Bulk DB writes
        if to_create:
            Product.objects.bulk_create(to_create)
        if to_update:
            Product.objects.bulk_update(to_update, UPDATE_FIELDS)
        ProductImage.objects.filter(product_id__in=skus).delete()
        if new_images:
            ProductImage.objects.bulk_create(new_images)

        logger.info("Upserted %d products (%d new), %d images", len(batch), len(to_create), len(new_images))
        return len(batch), len(new_images)


def run_import(config, source=None) -> ImportResult:
    """
    Bring the Product table in line with the external source.

    Raises ConfigurationError before touching the network or the database
    when credentials are missing; every other failure is reported in the
    returned ImportResult.
    """
    config.validate()
    if source is None:
        source = AirtableSource(config)
    return ProductImporter(source, batch_size=config.batch_size).run()
