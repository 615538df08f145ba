from decimal import Decimal

from django.test import SimpleTestCase

from catalog.models import ProductStatus
from catalog.transforms import (
    blob_key_for,
    build_images,
    deduplicate,
    extract_image_refs,
    key_prefix,
    to_count,
    to_decimal,
    to_flag,
    transform_record,
    validate_record,
)


def _valid_record():
    return {
        "id": "recA1",
        "createdTime": "2024-03-01T08:00:00.000Z",
        "fields": {
            "商品貨號": "PR-001",
            "產品名稱": "貓抓板",
            "英文品名": "Cat Scratcher",
            "品牌名稱": "Meowly",
            "類別": "貓用品",
            "建議售價": "NT$1,299",
            "重量g": "850 g",
            "入數": "12",
            "現貨商品": True,
            "商品圖檔": [
                {"id": "attMain", "url": "https://dl.airtable.test/a/main.jpg", "filename": "main.jpg"},
                {"id": "attSide", "url": "https://dl.airtable.test/b/side.jpg", "filename": "side.jpg"},
            ],
        },
    }


class TestValidation(SimpleTestCase):
    def test_valid_record(self):
        is_valid, reason = validate_record(_valid_record())
        self.assertTrue(is_valid)
        self.assertEqual(reason, "")

    def test_missing_sku_is_invalid(self):
        record = {"id": "recX", "fields": {"產品名稱": "No sku"}}
        is_valid, reason = validate_record(record)
        self.assertFalse(is_valid)
        self.assertIn("missing SKU", reason)

    def test_blank_sku_is_invalid(self):
        record = {"id": "recX", "fields": {"商品貨號": "   "}}
        is_valid, _ = validate_record(record)
        self.assertFalse(is_valid)

    def test_record_without_fields_is_invalid(self):
        is_valid, reason = validate_record({"id": "recX"})
        self.assertFalse(is_valid)
        self.assertIn("malformed", reason)

    def test_english_sku_alias_accepted(self):
        is_valid, _ = validate_record({"id": "recX", "fields": {"SKU": "EN-1"}})
        self.assertTrue(is_valid)


class TestCoercion(SimpleTestCase):
    def test_decimal_from_localized_price(self):
        self.assertEqual(to_decimal("NT$1,299"), Decimal("1299"))

    def test_decimal_from_number(self):
        self.assertEqual(to_decimal(19.5), Decimal("19.50"))

    def test_decimal_garbage_is_none(self):
        self.assertIsNone(to_decimal("ask us"))
        self.assertIsNone(to_decimal(None))
        self.assertIsNone(to_decimal(True))

    def test_count_rejects_negative(self):
        self.assertEqual(to_count("6 入"), 6)
        self.assertIsNone(to_count("-3"))

    def test_count_out_of_column_range_is_none(self):
        self.assertEqual(to_count("2147483647"), 2147483647)
        self.assertIsNone(to_count("99999999999999999999999"))
        self.assertIsNone(to_count("9" * 40))

    def test_decimal_out_of_column_range_is_none(self):
        self.assertEqual(to_decimal("9999999999.99"), Decimal("9999999999.99"))
        self.assertIsNone(to_decimal("10000000000"))
        self.assertIsNone(to_decimal("1000000", max_digits=8))
        self.assertIsNone(to_decimal(float("inf")))
        self.assertIsNone(to_decimal(float("nan")))

    def test_flag_tokens(self):
        self.assertTrue(to_flag(True))
        self.assertTrue(to_flag("是"))
        self.assertTrue(to_flag("Yes"))
        self.assertFalse(to_flag("否"))
        self.assertFalse(to_flag("no"))
        self.assertFalse(to_flag(None))
        self.assertFalse(to_flag(""))

    def test_flag_presence(self):
        self.assertTrue(to_flag("some note"))
        self.assertTrue(to_flag(["x"]))
        self.assertFalse(to_flag([]))


class TestTransformation(SimpleTestCase):
    def test_maps_localized_fields(self):
        result = transform_record(_valid_record())
        self.assertEqual(result["sku"], "PR-001")
        self.assertEqual(result["name"], "貓抓板")
        self.assertEqual(result["en_name"], "Cat Scratcher")
        self.assertEqual(result["brand"], "Meowly")
        self.assertEqual(result["price"], Decimal("1299"))
        self.assertEqual(result["weight_g"], Decimal("850"))
        self.assertEqual(result["pack_size"], 12)
        self.assertTrue(result["in_stock"])
        self.assertEqual(result["status"], ProductStatus.ACTIVE)

    def test_first_non_empty_alias_wins(self):
        record = {"id": "r", "fields": {"商品貨號": "X", "產品名稱": "", "商品名稱": "本地名", "Name": "English"}}
        self.assertEqual(transform_record(record)["name"], "本地名")

    def test_missing_fields_default_to_empty(self):
        record = {"id": "r", "fields": {"商品貨號": "X"}}
        result = transform_record(record)
        self.assertEqual(result["brand"], "")
        self.assertIsNone(result["price"])
        self.assertFalse(result["in_stock"])
        self.assertEqual(result["status"], ProductStatus.DRAFT)
        self.assertEqual(result["images"], [])

    def test_raw_capture(self):
        result = transform_record(_valid_record())
        self.assertEqual(result["raw"]["id"], "recA1")
        self.assertEqual(result["raw"]["fields"]["商品貨號"], "PR-001")

    def test_images_from_attachments(self):
        images = transform_record(_valid_record())["images"]
        self.assertEqual(
            [img["blob_key"] for img in images],
            [blob_key_for("PR-001", "main.jpg", "attMain"), blob_key_for("PR-001", "side.jpg", "attSide")],
        )
        self.assertEqual(images[0]["source_url"], "https://dl.airtable.test/a/main.jpg")
        self.assertEqual(images[0]["source_ref"], "attMain")
        self.assertEqual(images[1]["position"], 1)


class TestImageReferences(SimpleTestCase):
    def test_bracketed_text(self):
        refs = extract_image_refs("front.jpg (https://x.test/1.jpg), back.png (https://x.test/2.png)")
        self.assertEqual(refs, [
            ("front.jpg", "https://x.test/1.jpg", "https://x.test/1.jpg"),
            ("back.png", "https://x.test/2.png", "https://x.test/2.png"),
        ])

    def test_delimited_urls(self):
        refs = extract_image_refs("https://x.test/a.jpg; https://x.test/b.jpg\nnot a url")
        self.assertEqual(refs, [
            ("a.jpg", "https://x.test/a.jpg", "https://x.test/a.jpg"),
            ("b.jpg", "https://x.test/b.jpg", "https://x.test/b.jpg"),
        ])

    def test_unparseable_text_yields_nothing(self):
        self.assertEqual(extract_image_refs("see shared drive"), [])

    def test_attachment_without_url_ignored(self):
        self.assertEqual(extract_image_refs([{"filename": "x.jpg"}]), [])

    def test_attachment_identified_by_id(self):
        refs = extract_image_refs([{"id": "att1", "url": "https://dl.test/signed?sig=abc", "filename": "a.jpg"}])
        self.assertEqual(refs, [("a.jpg", "https://dl.test/signed?sig=abc", "att1")])

    def test_duplicate_filenames_made_unique(self):
        images = build_images("S-1", [
            ("a.jpg", "https://x.test/1/a.jpg", "https://x.test/1/a.jpg"),
            ("a.jpg", "https://x.test/2/a.jpg", "https://x.test/2/a.jpg"),
        ])
        self.assertEqual([img["filename"] for img in images], ["a.jpg", "1-a.jpg"])
        self.assertTrue(images[1]["blob_key"].endswith("-1-a.jpg"))

    def test_filenames_sanitized(self):
        images = build_images("S-1", [
            ("my photo.jpg", "https://x.test/p.jpg", "https://x.test/p.jpg"),
            ("..", "https://x.test/q.jpg", "https://x.test/q.jpg"),
        ])
        self.assertEqual(images[0]["filename"], "my_photo.jpg")
        self.assertTrue(images[0]["blob_key"].startswith("S-1/"))
        self.assertEqual(images[1]["filename"], "image")


class TestBlobKeys(SimpleTestCase):
    def test_key_changes_with_source(self):
        old = blob_key_for("P1", "photo.jpg", "https://dl.test/v1/photo.jpg")
        new = blob_key_for("P1", "photo.jpg", "https://dl.test/v2/photo.jpg")
        self.assertNotEqual(old, new)
        self.assertTrue(old.startswith("P1/") and old.endswith("-photo.jpg"))

    def test_key_stable_for_same_source(self):
        self.assertEqual(blob_key_for("P1", "a.jpg", "att1"), blob_key_for("P1", "a.jpg", "att1"))

    def test_prefix_kept_for_clean_sku(self):
        self.assertEqual(key_prefix("ABC-1"), "ABC-1")

    def test_sanitized_skus_do_not_collide(self):
        self.assertNotEqual(key_prefix("ABC/1"), key_prefix("ABC1"))
        self.assertNotEqual(key_prefix("S 1"), key_prefix("S_1"))
        self.assertTrue(key_prefix("S 1").startswith("S_1-"))


class TestDeduplication(SimpleTestCase):
    def test_keeps_first_occurrence(self):
        data = [{"sku": "A", "name": "First"}, {"sku": "A", "name": "Second"}, {"sku": "B"}]
        result = deduplicate(data)
        self.assertEqual([p.get("name") for p in result], ["First", None])

    def test_shared_seen_spans_calls(self):
        seen = set()
        deduplicate([{"sku": "A"}], seen)
        self.assertEqual(deduplicate([{"sku": "A"}, {"sku": "B"}], seen), [{"sku": "B"}])
