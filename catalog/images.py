import io
import logging
import mimetypes
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

from django.core.files.base import ContentFile
from django.db import transaction
from django.utils import timezone
from PIL import Image, UnidentifiedImageError

from catalog.clients.image_client import ImageClient
from catalog.config import ImageFetchConfig
from catalog.exceptions import ImageFetchFailure
from catalog.models import ImageFetchState, Product, ProductImage, SyncRun
from catalog.results import BatchResult
from catalog.storage import IMAGE_STORAGE
from catalog.transforms import build_images

logger = logging.getLogger(__name__)

GENERIC_CONTENT_TYPES = {'', 'application/octet-stream', 'binary/octet-stream'}


@dataclass
class ImageTarget:
    position: int
    filename: str
    source_url: str
    blob_key: str
    source_ref: str = ''


@dataclass
class StoredImage:
    position: int
    filename: str
    source_url: str
    blob_key: str
    content_type: str = ''
    width: Optional[int] = None
    height: Optional[int] = None
    existed: bool = False


@dataclass
class FetchOutcome:
    sku: str
    stored: list = field(default_factory=list)
    error: str = ''

    @property
    def ok(self):
        return not self.error

    @property
    def skipped_existing(self):
        return self.ok and bool(self.stored) and all(s.existed for s in self.stored)


def select_pending(limit, retry_failed=False):
    states = [ImageFetchState.PENDING]
    if retry_failed:
        states.append(ImageFetchState.FAILED)
    qs = (
        Product.objects.filter(image_state__in=states)
        .exclude(image_ref='')
        .prefetch_related('images')
        .order_by('sku')
    )
    return list(qs[:limit])


def targets_for(product):
    images = list(product.images.all())
    if images:
        return [
            ImageTarget(img.position, img.filename, img.source_url, img.blob_key)
            for img in images
        ]
    # Rows written outside the importer may only carry the primary reference
    filename = urlparse(product.image_ref).path.rsplit('/', 1)[-1] or 'image'
    return [ImageTarget(**img) for img in build_images(product.sku, [(filename, product.image_ref, product.image_ref)])]


def validate_image_url(url):
    parsed = urlparse(url or '')
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ImageFetchFailure("invalid image reference")


def guess_content_type(declared, filename):
    declared = (declared or '').split(';')[0].strip().lower()
    if declared not in GENERIC_CONTENT_TYPES:
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or 'application/octet-stream'


def read_dimensions(content):
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        return None, None


def store_image(target, client, session):
    """Downloads one image into the blob store, unless it is already there."""
    validate_image_url(target.source_url)

    if IMAGE_STORAGE.exists(target.blob_key):
        logger.debug("%s already stored, skipping download", target.blob_key)
        return StoredImage(
            target.position, target.filename, target.source_url, target.blob_key, existed=True,
        )

    client.check_size(client.probe_size(session, target.source_url))
    download = client.download(session, target.source_url)

    content_type = guess_content_type(download.content_type, target.filename)
    width, height = read_dimensions(download.content)

    content = ContentFile(download.content, name=target.filename)
    content.content_type = content_type
    saved_key = IMAGE_STORAGE.save(target.blob_key, content)

    return StoredImage(
        target.position, target.filename, target.source_url, saved_key,
        content_type=content_type, width=width, height=height,
    )


def fetch_product_images(sku, targets, client):
    """
    Runs in a worker thread: network and blob store only, no database access.

    A product succeeds only if every one of its images is stored.
    """
    outcome = FetchOutcome(sku=sku)
    with client.make_session() as session:
        for target in targets:
            try:
                outcome.stored.append(store_image(target, client, session))
            except ImageFetchFailure as exc:
                logger.warning("Image fetch failed for %s (%s): %s", sku, target.source_url, exc)
                outcome.error = str(exc)
                break
            except Exception as exc:
                logger.exception("Unable to fetch %s to %s", target.source_url, target.blob_key)
                outcome.error = f"{exc.__class__.__name__}: {exc}"
                break
    return outcome


def apply_outcome(product, outcome):
    """Records the result for one product; returns False if the row changed meanwhile."""
    now = timezone.now()
    if outcome.ok:
        values = {
            'image_state': ImageFetchState.DONE,
            'image_key': outcome.stored[0].blob_key,
            'image_error': '',
        }
    else:
        values = {
            'image_state': ImageFetchState.FAILED,
            'image_key': None,
            'image_error': outcome.error[:255],
        }

    with transaction.atomic():
        # Only flip rows the importer has not reset since selection
        updated = Product.objects.filter(
            sku=product.sku, image_state=product.image_state, image_ref=product.image_ref,
        ).update(updated_at=now, **values)
        if not updated:
            logger.warning("Product %s changed while its images were fetched, leaving it", product.sku)
            return False

        for stored in outcome.stored if outcome.ok else ():
            defaults = {
                'filename': stored.filename,
                'source_url': stored.source_url,
                'blob_key': stored.blob_key,
            }
            if not stored.existed:
                defaults.update(
                    content_type=stored.content_type, width=stored.width, height=stored.height,
                )
            ProductImage.objects.update_or_create(
                product_id=product.sku, position=stored.position, defaults=defaults,
            )
    return True


class ImageFetchScheduler:
    def __init__(self, config, client=None):
        self.config = config
        self.client = client or ImageClient(max_bytes=config.max_bytes, timeout=config.timeout)

    def run(self, limit=None) -> BatchResult:
        limit = self.config.batch_limit if limit is None else limit
        started = time.monotonic()
        result = BatchResult()
        sync_run = SyncRun.objects.create(kind=SyncRun.Kind.IMAGES)

        try:
            products = select_pending(limit, retry_failed=self.config.retry_failed) if limit > 0 else []
            logger.info("Fetching images for %d products", len(products))
            by_sku = {p.sku: p for p in products}

            with ThreadPoolExecutor(max_workers=max(1, self.config.concurrency)) as executor:
                futures = [
                    executor.submit(fetch_product_images, p.sku, targets_for(p), self.client)
                    for p in products
                ]
                for future in as_completed(futures):
                    outcome = future.result()
                    result.attempted += 1
                    if not apply_outcome(by_sku[outcome.sku], outcome):
                        continue
                    if outcome.ok:
                        result.succeeded += 1
                        if outcome.skipped_existing:
                            result.skipped_existing += 1
                    else:
                        result.failed += 1
        except Exception as exc:
            logger.exception("Image batch aborted after %d products", result.attempted)
            result.error = f"Unexpected error: {exc}"

        result.duration_seconds = round(time.monotonic() - started, 3)
        sync_run.finish(result.as_dict(), error=result.error)
        logger.info("Image batch complete: %s", result.as_dict())
        return result


def run_image_batch(limit=None, config=None) -> BatchResult:
    if config is None:
        config = ImageFetchConfig.from_settings()
    return ImageFetchScheduler(config).run(limit)
