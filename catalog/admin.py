from django.contrib import admin

from catalog.models import ImageFetchState, Product, ProductImage, SyncRun


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0
    fields = ('position', 'filename', 'source_url', 'blob_key', 'content_type', 'width', 'height')
    readonly_fields = fields


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('sku', 'name', 'brand', 'category', 'status', 'price', 'image_state', 'updated_at')
    list_filter = ('status', 'image_state', 'brand', 'category')
    search_fields = ('sku', 'name', 'en_name', 'barcode')
    readonly_fields = ('raw', 'image_ref', 'image_refs', 'image_key', 'image_error', 'created_at', 'updated_at')
    inlines = [ProductImageInline]
    actions = ['reset_image_state']

    @admin.action(description="Queue images for re-fetch")
    def reset_image_state(self, request, queryset):
        updated = queryset.exclude(image_ref='').update(
            image_state=ImageFetchState.PENDING, image_key=None, image_error='',
        )
        self.message_user(request, f"{updated} products queued for image fetch.")


@admin.register(ProductImage)
class ProductImageAdmin(admin.ModelAdmin):
    list_display = ('blob_key', 'product', 'position', 'content_type', 'width', 'height')
    search_fields = ('product__sku', 'filename', 'blob_key')
    raw_id_fields = ('product',)


@admin.register(SyncRun)
class SyncRunAdmin(admin.ModelAdmin):
    list_display = ('kind', 'status', 'started_at', 'finished_at')
    list_filter = ('kind', 'status')
    readonly_fields = ('kind', 'status', 'started_at', 'finished_at', 'counters', 'error')
