from django.db import models
from django.utils import timezone


class ImageFetchState(models.TextChoices):
    PENDING = 'pending', 'Pending'
    DONE = 'done', 'Done'
    FAILED = 'failed', 'Failed'


class ProductStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    DRAFT = 'draft', 'Draft'


class Product(models.Model):
    sku = models.CharField(max_length=100, primary_key=True)
    name = models.CharField(max_length=255, blank=True)
    en_name = models.CharField(max_length=255, blank=True)
    brand = models.CharField(max_length=255, blank=True, db_index=True)
    category = models.CharField(max_length=255, blank=True, db_index=True)
    barcode = models.CharField(max_length=64, blank=True)
    description = models.TextField(blank=True)
    material = models.CharField(max_length=255, blank=True)
    size = models.CharField(max_length=255, blank=True)
    origin = models.CharField(max_length=128, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    weight_g = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    pack_size = models.PositiveIntegerField(null=True, blank=True)
    in_stock = models.BooleanField(default=False)
    status = models.CharField(
        max_length=16, choices=ProductStatus.choices, default=ProductStatus.DRAFT, db_index=True,
    )
    raw = models.JSONField(default=dict, blank=True)

    image_ref = models.TextField(blank=True, default='')
    image_refs = models.JSONField(default=list, blank=True)
    image_key = models.CharField(max_length=512, null=True, blank=True)
    image_state = models.CharField(
        max_length=16, choices=ImageFetchState.choices, default=ImageFetchState.PENDING, db_index=True,
    )
    image_error = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sku']

    def __str__(self):
        return f"{self.sku} ({self.name or '-'})"


class ProductImage(models.Model):
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name='images', db_column='sku',
    )
    position = models.PositiveSmallIntegerField(default=0)
    filename = models.CharField(max_length=255)
    source_url = models.TextField()
    source_ref = models.TextField(blank=True)
    blob_key = models.CharField(max_length=512)
    content_type = models.CharField(max_length=100, blank=True)
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    variant = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['product', 'position']
        constraints = [
            models.UniqueConstraint(fields=['product', 'position'], name='unique_product_image_position'),
        ]

    def __str__(self):
        return self.blob_key


class SyncRun(models.Model):
    class Kind(models.TextChoices):
        IMPORT = 'import', 'Import'
        IMAGES = 'images', 'Image batch'

    class Status(models.TextChoices):
        RUNNING = 'running', 'Running'
        SUCCESS = 'success', 'Success'
        FAILED = 'failed', 'Failed'

    kind = models.CharField(max_length=16, choices=Kind.choices, db_index=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.RUNNING)
    started_at = models.DateTimeField(default=timezone.now)
    finished_at = models.DateTimeField(null=True, blank=True)
    counters = models.JSONField(default=dict, blank=True)
    error = models.TextField(blank=True)

    class Meta:
        ordering = ['-started_at']

    def __str__(self):
        return f"{self.kind} {self.status} ({self.started_at:%Y-%m-%d %H:%M})"

    def finish(self, counters, error=''):
        self.status = self.Status.FAILED if error else self.Status.SUCCESS
        self.finished_at = timezone.now()
        self.counters = counters
        self.error = error or ''
        self.save(update_fields=['status', 'finished_at', 'counters', 'error'])
