import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('sku', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('name', models.CharField(blank=True, max_length=255)),
                ('en_name', models.CharField(blank=True, max_length=255)),
                ('brand', models.CharField(blank=True, db_index=True, max_length=255)),
                ('category', models.CharField(blank=True, db_index=True, max_length=255)),
                ('barcode', models.CharField(blank=True, max_length=64)),
                ('description', models.TextField(blank=True)),
                ('material', models.CharField(blank=True, max_length=255)),
                ('size', models.CharField(blank=True, max_length=255)),
                ('origin', models.CharField(blank=True, max_length=128)),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('weight_g', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('pack_size', models.PositiveIntegerField(blank=True, null=True)),
                ('in_stock', models.BooleanField(default=False)),
                ('status', models.CharField(
                    choices=[('active', 'Active'), ('draft', 'Draft')],
                    db_index=True, default='draft', max_length=16,
                )),
                ('raw', models.JSONField(blank=True, default=dict)),
                ('image_ref', models.TextField(blank=True, default='')),
                ('image_refs', models.JSONField(blank=True, default=list)),
                ('image_key', models.CharField(blank=True, max_length=512, null=True)),
                ('image_state', models.CharField(
                    choices=[('pending', 'Pending'), ('done', 'Done'), ('failed', 'Failed')],
                    db_index=True, default='pending', max_length=16,
                )),
                ('image_error', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['sku'],
            },
        ),
        migrations.CreateModel(
            name='SyncRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(
                    choices=[('import', 'Import'), ('images', 'Image batch')],
                    db_index=True, max_length=16,
                )),
                ('status', models.CharField(
                    choices=[('running', 'Running'), ('success', 'Success'), ('failed', 'Failed')],
                    default='running', max_length=16,
                )),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('finished_at', models.DateTimeField(blank=True, null=True)),
                ('counters', models.JSONField(blank=True, default=dict)),
                ('error', models.TextField(blank=True)),
            ],
            options={
                'ordering': ['-started_at'],
            },
        ),
        migrations.CreateModel(
            name='ProductImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('filename', models.CharField(max_length=255)),
                ('source_url', models.TextField()),
                ('source_ref', models.TextField(blank=True)),
                ('blob_key', models.CharField(max_length=512)),
                ('content_type', models.CharField(blank=True, max_length=100)),
                ('width', models.PositiveIntegerField(blank=True, null=True)),
                ('height', models.PositiveIntegerField(blank=True, null=True)),
                ('variant', models.CharField(blank=True, max_length=50)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('product', models.ForeignKey(
                    db_column='sku',
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='images',
                    to='catalog.product',
                )),
            ],
            options={
                'ordering': ['product', 'position'],
            },
        ),
        migrations.AddConstraint(
            model_name='productimage',
            constraint=models.UniqueConstraint(fields=('product', 'position'), name='unique_product_image_position'),
        ),
    ]
