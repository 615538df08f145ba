import base64
import binascii
import hmac
import logging
import mimetypes
from functools import wraps

from django.conf import settings
from django.db.models import Count, Q
from django.http import FileResponse, Http404, HttpResponse, JsonResponse
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from catalog.config import SourceConfig
from catalog.exceptions import ConfigurationError
from catalog.models import ImageFetchState, Product, ProductImage
from catalog.storage import IMAGE_STORAGE
from catalog.sync import run_import

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _basic_auth_credentials(request):
    header = request.META.get('HTTP_AUTHORIZATION', '')
    if not header.startswith('Basic '):
        return None
    try:
        decoded = base64.b64decode(header[6:], validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(':')
    if not sep:
        return None
    return username, password


def basic_auth_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        expected_user = getattr(settings, 'CATALOG_ADMIN_USERNAME', '')
        expected_pass = getattr(settings, 'CATALOG_ADMIN_PASSWORD', '')
        credentials = _basic_auth_credentials(request)
        if not (expected_user and expected_pass and credentials
                and hmac.compare_digest(credentials[0], expected_user)
                and hmac.compare_digest(credentials[1], expected_pass)):
            response = HttpResponse('Unauthorized', status=401)
            response['WWW-Authenticate'] = 'Basic realm="Admin"'
            return response
        return view(request, *args, **kwargs)
    return wrapper


@csrf_exempt
@require_POST
@basic_auth_required
def sync_products(request):
    try:
        result = run_import(SourceConfig.from_settings())
    except ConfigurationError as exc:
        logger.error("Import requested but not configured: %s", exc)
        return JsonResponse({'ok': False, 'error': str(exc)}, status=500)
    return JsonResponse(result.as_dict(), status=200 if result.ok else 502)


def _int_param(request, name, default):
    try:
        return int(request.GET.get(name, default))
    except (TypeError, ValueError):
        return default


def _image_urls(product):
    if product.image_state != ImageFetchState.DONE:
        return []
    return [reverse('image-blob', args=[img.blob_key]) for img in product.images.all()]


def _product_summary(product):
    return {
        'sku': product.sku,
        'name': product.name,
        'brand': product.brand,
        'category': product.category,
        'status': product.status,
        'price': product.price,
        'image_state': product.image_state,
        'images': _image_urls(product),
    }


@require_GET
def product_list(request):
    page = max(1, _int_param(request, 'page', 1))
    size = min(MAX_PAGE_SIZE, max(1, _int_param(request, 'size', DEFAULT_PAGE_SIZE)))

    qs = Product.objects.prefetch_related('images').order_by('sku')
    q = request.GET.get('q', '').strip()
    if q:
        qs = qs.filter(Q(sku__icontains=q) | Q(name__icontains=q) | Q(barcode__icontains=q))
    for param in ('brand', 'category', 'status'):
        value = request.GET.get(param, '').strip()
        if value:
            qs = qs.filter(**{param: value})

    offset = (page - 1) * size
    items = [_product_summary(p) for p in qs[offset:offset + size]]
    return JsonResponse({'ok': True, 'page': page, 'size': size, 'items': items})


def _get_product(sku):
    try:
        return Product.objects.prefetch_related('images').get(sku=sku)
    except Product.DoesNotExist:
        raise Http404(f"No product {sku}")


@require_GET
def product_detail(request, sku):
    product = _get_product(sku)
    data = _product_summary(product)
    data.update({
        'en_name': product.en_name,
        'barcode': product.barcode,
        'description': product.description,
        'material': product.material,
        'size': product.size,
        'origin': product.origin,
        'weight_g': product.weight_g,
        'pack_size': product.pack_size,
        'in_stock': product.in_stock,
        'image_ref': product.image_ref,
        'image_key': product.image_key,
        'updated_at': product.updated_at,
    })
    return JsonResponse({'ok': True, 'product': data})


@require_GET
def product_images(request, sku):
    product = _get_product(sku)
    images = [
        {
            'position': img.position,
            'filename': img.filename,
            'blob_key': img.blob_key,
            'content_type': img.content_type,
            'width': img.width,
            'height': img.height,
            'url': reverse('image-blob', args=[img.blob_key]),
        }
        for img in product.images.all()
    ]
    return JsonResponse({'ok': True, 'sku': product.sku, 'image_state': product.image_state, 'images': images})


@require_GET
def debug_counts(request):
    states = dict(
        Product.objects.order_by().values('image_state')
        .annotate(n=Count('sku')).values_list('image_state', 'n')
    )
    return JsonResponse({
        'ok': True,
        'products': Product.objects.count(),
        'images': ProductImage.objects.count(),
        'image_states': {state: states.get(state, 0) for state in ImageFetchState.values},
    })


@require_GET
def image_blob(request, key):
    if not IMAGE_STORAGE.exists(key):
        raise Http404(f"No image {key}")
    image = ProductImage.objects.filter(blob_key=key).only('content_type').first()
    content_type = (image and image.content_type) or mimetypes.guess_type(key)[0] or 'application/octet-stream'
    response = FileResponse(IMAGE_STORAGE.open(key, 'rb'), content_type=content_type)
    response['Cache-Control'] = 'public, max-age=86400'
    return response
