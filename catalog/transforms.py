import hashlib
import os
import re
from decimal import Decimal, InvalidOperation
from functools import partial
from urllib.parse import unquote, urlparse

from django.core.exceptions import SuspiciousFileOperation
from django.utils.text import get_valid_filename

from catalog.models import ProductStatus

TRUE_TOKENS = {'1', 'y', 'yes', 'true', 't', 'v', 'x', 'on', '✓', '✔', '是', '有', '現貨', '對'}
FALSE_TOKENS = {'0', 'n', 'no', 'false', 'f', 'off', '-', '否', '無', '沒有', '缺貨'}

# "photo.jpg (https://dl.airtable.com/...)" as produced by CSV exports of attachment fields
BRACKETED_IMAGE_RE = re.compile(r'(?P<filename>[^,;()\r\n]+?)\s*\((?P<url>https?://[^\s)]+)\)')
URL_SPLIT_RE = re.compile(r'[,;\n\r]+')
NUMBER_RE = re.compile(r'-?\d+(?:\.\d+)?')
CENTS = Decimal('0.01')
# PositiveIntegerField upper bound on every supported backend
MAX_COUNT = 2147483647


def _is_empty(value):
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def to_text(value):
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'yes' if value else 'no'
    if isinstance(value, (list, tuple)):
        return ', '.join(to_text(v) for v in value if not _is_empty(v))
    if isinstance(value, dict):
        return to_text(value.get('name') or value.get('text') or '')
    return str(value).strip()


def to_decimal(value, max_digits=12):
    """
    Numbers and numeric strings ("NT$1,299", "200 g") to Decimal, else None.

    Values that do not fit a ``DecimalField(max_digits, decimal_places=2)``
    column are treated as unparseable.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        match = NUMBER_RE.search(to_text(value).replace(',', ''))
        if not match:
            return None
        text = match.group()
    try:
        number = Decimal(text)
        if not number.is_finite():
            return None
        number = number.quantize(CENTS)
    except InvalidOperation:
        return None
    if abs(number) >= Decimal(10) ** (max_digits - 2):
        return None
    return number


def to_count(value):
    number = to_decimal(value, max_digits=30)
    if number is None or number < 0 or number > MAX_COUNT:
        return None
    return int(number)


def to_flag(value):
    if isinstance(value, bool):
        return value
    if _is_empty(value):
        return False
    if isinstance(value, (int, float)):
        return value != 0
    token = to_text(value).lower()
    if token in FALSE_TOKENS:
        return False
    if token in TRUE_TOKENS:
        return True
    # Any other non-empty value counts as present
    return True


# (column, candidate source field names in priority order, coercion)
FIELD_MAP = (
    ('name', ('產品名稱', '商品名稱', 'Name', 'name', 'Title', 'title'), to_text),
    ('en_name', ('英文品名', 'English Name', 'en_name'), to_text),
    ('brand', ('品牌名稱', '品牌', 'Brand', 'brand'), to_text),
    ('category', ('類別', '分類', 'Category', 'category'), to_text),
    ('barcode', ('國際條碼', '條碼', 'Barcode', 'EAN'), to_text),
    ('description', ('商品介紹', '商品描述', 'Description', 'description'), to_text),
    ('material', ('成份/材質', '材質', 'Material'), to_text),
    ('size', ('商品尺寸', '尺寸', 'Size'), to_text),
    ('origin', ('產地', 'Origin', 'Country of Origin'), to_text),
    ('price', ('建議售價', '售價', 'Suggested Price', 'Price', 'price'), to_decimal),
    ('weight_g', ('重量g', '重量', 'Weight (g)', 'Weight', 'weight'), partial(to_decimal, max_digits=10)),
    ('pack_size', ('入數', '包裝數量', 'Pack Size', 'pack_size'), to_count),
    ('in_stock', ('現貨商品', '現貨', 'In Stock', 'in_stock'), to_flag),
)

SKU_FIELDS = ('商品貨號', '貨號', 'SKU', 'sku')
IMAGE_FIELDS = ('商品圖檔', '圖片', 'Images', 'images', 'Image', 'image')

MAPPED_COLUMNS = tuple(column for column, _, _ in FIELD_MAP) + ('status',)


def first_present(fields, candidates):
    for name in candidates:
        value = fields.get(name)
        if not _is_empty(value):
            return value
    return None


def extract_sku(record):
    return to_text(first_present(record.get('fields') or {}, SKU_FIELDS))


def validate_record(record):
    """Returns (is_valid, reason)."""
    if not isinstance(record, dict):
        return False, "malformed record"
    if not isinstance(record.get('fields'), dict):
        return False, f"{record.get('id', '?')}: malformed record"
    if not extract_sku(record):
        return False, f"{record.get('id', '?')}: missing SKU"
    return True, ""


def _filename_from_url(url):
    name = os.path.basename(unquote(urlparse(url).path))
    return name or 'image'


def _parse_text_images(text):
    matches = list(BRACKETED_IMAGE_RE.finditer(text))
    if matches:
        return [(m.group('filename').strip(), m.group('url'), m.group('url')) for m in matches]
    refs = []
    for token in URL_SPLIT_RE.split(text):
        token = token.strip()
        if token.lower().startswith(('http://', 'https://')):
            refs.append((_filename_from_url(token), token, token))
    return refs


def extract_image_refs(value):
    """
    Returns an ordered list of (filename, url, source_ref) triples from an image field.

    Accepts attachment lists (dicts with ``url`` and ``filename``), plain
    string lists, and free text either in the bracketed
    ``name.jpg (https://...)`` form or as delimited URLs. Anything
    unparseable yields no references.

    ``source_ref`` identifies the image across imports. Attachment URLs are
    signed and change on every read, so attachments are identified by their
    ``id``; text references by the URL itself.
    """
    if _is_empty(value):
        return []
    refs = []
    if isinstance(value, (list, tuple)):
        for entry in value:
            if isinstance(entry, dict):
                url = to_text(entry.get('url'))
                if url:
                    filename = to_text(entry.get('filename')) or _filename_from_url(url)
                    refs.append((filename, url, to_text(entry.get('id')) or url))
            elif isinstance(entry, str):
                refs.extend(_parse_text_images(entry))
    elif isinstance(value, str):
        refs = _parse_text_images(value)
    return refs


def _safe_name(name, default):
    try:
        return get_valid_filename(name)
    except SuspiciousFileOperation:
        return default


def _digest(text, length):
    return hashlib.sha1(text.encode('utf-8')).hexdigest()[:length]


def key_prefix(sku):
    """Blob directory for a sku; distinct skus never share one."""
    safe = _safe_name(sku, '')
    if safe != sku:
        safe = f"{safe or 'product'}-{_digest(sku, 8)}"
    return safe


def blob_key_for(sku, filename, source_ref):
    # A replaced image gets a new key even when its filename is reused
    return f"{key_prefix(sku)}/{_digest(source_ref, 10)}-{filename}"


def build_images(sku, refs):
    """Assigns positions, unique sanitized filenames and blob keys."""
    images = []
    used = set()
    for position, (filename, url, source_ref) in enumerate(refs):
        filename = _safe_name(filename, 'image')
        if filename in used:
            filename = f"{position}-{filename}"
        used.add(filename)
        images.append({
            'position': position,
            'filename': filename,
            'source_url': url,
            'source_ref': source_ref,
            'blob_key': blob_key_for(sku, filename, source_ref),
        })
    return images


def transform_record(record):
    fields = record['fields']
    sku = extract_sku(record)

    payload = {'sku': sku}
    for column, candidates, coerce in FIELD_MAP:
        payload[column] = coerce(first_present(fields, candidates))
    payload['status'] = ProductStatus.ACTIVE if payload['in_stock'] else ProductStatus.DRAFT
    payload['raw'] = {
        'id': record.get('id'),
        'createdTime': record.get('createdTime'),
        'fields': fields,
    }
    payload['images'] = build_images(sku, extract_image_refs(first_present(fields, IMAGE_FIELDS)))
    return payload


def deduplicate(payloads, seen=None):
    """Keeps the first payload per sku, also across calls sharing ``seen``."""
    if seen is None:
        seen = set()
    unique = []
    for p in payloads:
        if p['sku'] in seen:
            continue
        seen.add(p['sku'])
        unique.append(p)
    return unique
