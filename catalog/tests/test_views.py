import base64
from unittest.mock import patch

from django.core.files.base import ContentFile
from django.test import TestCase, override_settings
from django.urls import reverse

from catalog.exceptions import ConfigurationError
from catalog.models import ImageFetchState, Product, ProductImage
from catalog.results import ImportResult
from catalog.storage import IMAGE_STORAGE
from catalog.tests.test_images import ImageStorageTestCase


def _auth(username="operator", password="secret"):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"HTTP_AUTHORIZATION": f"Basic {token}"}


class TestSyncEndpoint(TestCase):
    def test_requires_credentials(self):
        response = self.client.post(reverse("sync-products"))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response["WWW-Authenticate"], 'Basic realm="Admin"')

    def test_wrong_password_rejected(self):
        response = self.client.post(reverse("sync-products"), **_auth(password="nope"))

        self.assertEqual(response.status_code, 401)

    def test_garbage_header_rejected(self):
        response = self.client.post(reverse("sync-products"), HTTP_AUTHORIZATION="Basic !!!")

        self.assertEqual(response.status_code, 401)

    def test_get_not_allowed(self):
        response = self.client.get(reverse("sync-products"), **_auth())

        self.assertEqual(response.status_code, 405)

    @patch("catalog.views.run_import")
    def test_successful_sync(self, mock_run):
        mock_run.return_value = ImportResult(records_fetched=5, products_upserted=5)

        response = self.client.post(reverse("sync-products"), **_auth())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["products_upserted"], 5)

    @patch("catalog.views.run_import")
    def test_failed_sync_returns_bad_gateway(self, mock_run):
        result = ImportResult()
        result.fail("Airtable fetch failed: 503")
        mock_run.return_value = result

        response = self.client.post(reverse("sync-products"), **_auth())

        self.assertEqual(response.status_code, 502)
        self.assertFalse(response.json()["ok"])

    @patch("catalog.views.run_import", side_effect=ConfigurationError("Missing AIRTABLE_API_TOKEN"))
    def test_configuration_error(self, mock_run):
        response = self.client.post(reverse("sync-products"), **_auth())

        self.assertEqual(response.status_code, 500)
        self.assertIn("AIRTABLE_API_TOKEN", response.json()["error"])

    @override_settings(CATALOG_ADMIN_PASSWORD="")
    def test_unset_credentials_lock_endpoint(self):
        response = self.client.post(reverse("sync-products"), **_auth(password=""))

        self.assertEqual(response.status_code, 401)


class TestReadApi(TestCase):
    @classmethod
    def setUpTestData(cls):
        done = Product.objects.create(
            sku="CAT-1", name="Scratcher", brand="Meowly", category="cat", status="active",
            barcode="4710001", image_ref="http://img.test/1.jpg", image_key="CAT-1/1.jpg",
            image_state=ImageFetchState.DONE,
        )
        ProductImage.objects.create(
            product=done, position=0, filename="1.jpg", source_url="http://img.test/1.jpg",
            blob_key="CAT-1/1.jpg", content_type="image/jpeg", width=10, height=8,
        )
        pending = Product.objects.create(sku="DOG-1", name="Leash", brand="Woof", category="dog")
        ProductImage.objects.create(
            product=pending, position=0, filename="2.jpg", source_url="http://img.test/2.jpg", blob_key="DOG-1/2.jpg",
        )
        Product.objects.create(sku="DOG-2", name="Bowl", brand="Woof", category="dog")

    def test_list(self):
        data = self.client.get(reverse("product-list")).json()

        self.assertEqual([item["sku"] for item in data["items"]], ["CAT-1", "DOG-1", "DOG-2"])
        self.assertEqual(data["items"][0]["images"], ["/images/CAT-1/1.jpg"])
        self.assertEqual(data["items"][1]["images"], [])

    def test_list_filters(self):
        data = self.client.get(reverse("product-list"), {"brand": "Woof", "q": "bowl"}).json()

        self.assertEqual([item["sku"] for item in data["items"]], ["DOG-2"])

    def test_list_search_barcode(self):
        data = self.client.get(reverse("product-list"), {"q": "4710001"}).json()

        self.assertEqual([item["sku"] for item in data["items"]], ["CAT-1"])

    def test_list_paging(self):
        data = self.client.get(reverse("product-list"), {"page": 2, "size": 2}).json()

        self.assertEqual(data["page"], 2)
        self.assertEqual([item["sku"] for item in data["items"]], ["DOG-2"])

    def test_list_size_clamped(self):
        data = self.client.get(reverse("product-list"), {"size": 5000, "page": "x"}).json()

        self.assertEqual(data["size"], 100)
        self.assertEqual(data["page"], 1)

    def test_detail(self):
        data = self.client.get(reverse("product-detail", args=["CAT-1"])).json()

        self.assertEqual(data["product"]["barcode"], "4710001")
        self.assertEqual(data["product"]["image_key"], "CAT-1/1.jpg")

    def test_detail_not_found(self):
        response = self.client.get(reverse("product-detail", args=["NOPE"]))

        self.assertEqual(response.status_code, 404)

    def test_images(self):
        data = self.client.get(reverse("product-images", args=["CAT-1"])).json()

        self.assertEqual(data["image_state"], "done")
        self.assertEqual(data["images"][0]["width"], 10)
        self.assertEqual(data["images"][0]["url"], "/images/CAT-1/1.jpg")

    def test_debug_counts(self):
        data = self.client.get(reverse("debug-counts")).json()

        self.assertEqual(data["products"], 3)
        self.assertEqual(data["images"], 2)
        self.assertEqual(data["image_states"], {"pending": 2, "done": 1, "failed": 0})


class TestImageBlob(ImageStorageTestCase):
    def test_serves_stored_image(self):
        product = Product.objects.create(sku="CAT-1")
        ProductImage.objects.create(
            product=product, filename="1.jpg", source_url="http://img.test/1.jpg",
            blob_key="CAT-1/1.jpg", content_type="image/png",
        )
        IMAGE_STORAGE.save("CAT-1/1.jpg", ContentFile(b"imagebytes"))

        response = self.client.get(reverse("image-blob", args=["CAT-1/1.jpg"]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "image/png")
        self.assertEqual(b"".join(response.streaming_content), b"imagebytes")

    def test_guesses_type_without_metadata(self):
        IMAGE_STORAGE.save("loose/pic.jpg", ContentFile(b"x"))

        response = self.client.get(reverse("image-blob", args=["loose/pic.jpg"]))

        self.assertEqual(response["Content-Type"], "image/jpeg")

    def test_missing_blob(self):
        response = self.client.get(reverse("image-blob", args=["CAT-1/none.jpg"]))

        self.assertEqual(response.status_code, 404)
