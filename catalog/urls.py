from django.urls import path

from catalog import views

urlpatterns = [
    path('sync/', views.sync_products, name='sync-products'),
    path('api/products', views.product_list, name='product-list'),
    path('api/products/<str:sku>', views.product_detail, name='product-detail'),
    path('api/products/<str:sku>/images', views.product_images, name='product-images'),
    path('api/debug/counts', views.debug_counts, name='debug-counts'),
    path('images/<path:key>', views.image_blob, name='image-blob'),
]
