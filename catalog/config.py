from dataclasses import dataclass

from django.conf import settings

from catalog.exceptions import ConfigurationError

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class SourceConfig:
    api_token: str
    base_id: str
    table_name: str
    api_url: str = 'https://api.airtable.com/v0'
    page_size: int = MAX_PAGE_SIZE
    rate_limit: int = 5
    timeout: float = 30.0
    batch_size: int = 100

    @classmethod
    def from_settings(cls):
        return cls(
            api_token=getattr(settings, 'AIRTABLE_API_TOKEN', ''),
            base_id=getattr(settings, 'AIRTABLE_BASE_ID', ''),
            table_name=getattr(settings, 'AIRTABLE_TABLE_NAME', ''),
            api_url=getattr(settings, 'AIRTABLE_API_URL', 'https://api.airtable.com/v0'),
            page_size=getattr(settings, 'AIRTABLE_PAGE_SIZE', MAX_PAGE_SIZE),
            rate_limit=getattr(settings, 'AIRTABLE_RATE_LIMIT', 5),
            timeout=getattr(settings, 'AIRTABLE_TIMEOUT', 30.0),
            batch_size=getattr(settings, 'CATALOG_IMPORT_BATCH_SIZE', 100),
        )

    def validate(self):
        missing = [
            name for name, value in (
                ('AIRTABLE_API_TOKEN', self.api_token),
                ('AIRTABLE_BASE_ID', self.base_id),
                ('AIRTABLE_TABLE_NAME', self.table_name),
            )
            if not (value or '').strip()
        ]
        if missing:
            raise ConfigurationError(f"Missing source configuration: {', '.join(missing)}")

    @property
    def effective_page_size(self):
        return max(1, min(self.page_size, MAX_PAGE_SIZE))


@dataclass(frozen=True)
class ImageFetchConfig:
    batch_limit: int = 20
    max_bytes: int = 10 * 1024 * 1024
    timeout: float = 30.0
    concurrency: int = 4
    retry_failed: bool = False

    @classmethod
    def from_settings(cls):
        return cls(
            batch_limit=getattr(settings, 'CATALOG_IMAGE_BATCH_LIMIT', 20),
            max_bytes=getattr(settings, 'CATALOG_IMAGE_MAX_BYTES', 10 * 1024 * 1024),
            timeout=getattr(settings, 'CATALOG_IMAGE_FETCH_TIMEOUT', 30.0),
            concurrency=getattr(settings, 'CATALOG_IMAGE_FETCH_CONCURRENCY', 4),
            retry_failed=getattr(settings, 'CATALOG_IMAGE_RETRY_FAILED', False),
        )
