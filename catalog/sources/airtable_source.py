import logging
import time
from urllib.parse import quote

import requests

from catalog.exceptions import SourceFetchError

from .base import BaseSource, Page

logger = logging.getLogger(__name__)


class AirtableSource(BaseSource):
    """
    Reads a table from the Airtable REST API one page at a time.

    The ``offset`` returned with each page is the continuation cursor; the
    last page carries none. Consecutive requests are spaced out to stay
    under the configured requests-per-second limit.
    """

    def __init__(self, config, session=None):
        self.config = config
        self.session = session or self.make_session()
        self._last_request_at = None

    def make_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'Authorization': f"Bearer {self.config.api_token}",
            'Content-Type': 'application/json',
        })
        return session

    @property
    def url(self):
        base = self.config.api_url.rstrip('/')
        return f"{base}/{self.config.base_id}/{quote(self.config.table_name, safe='')}"

    def _throttle(self):
        if self._last_request_at is None or self.config.rate_limit <= 0:
            return
        interval = 1.0 / self.config.rate_limit
        elapsed = time.monotonic() - self._last_request_at
        if elapsed < interval:
            time.sleep(interval - elapsed)

    def list_page(self, cursor=None) -> Page:
        params = {'pageSize': self.config.effective_page_size}
        if cursor:
            params['offset'] = cursor

        self._throttle()
        try:
            response = self.session.get(self.url, params=params, timeout=self.config.timeout)
            self._last_request_at = time.monotonic()
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as exc:
            raise SourceFetchError(
                f"Airtable fetch failed: {exc.response.status_code}"
            ) from exc
        except requests.exceptions.JSONDecodeError as exc:
            raise SourceFetchError("Airtable returned a non-JSON response") from exc
        except requests.exceptions.RequestException as exc:
            raise SourceFetchError(f"Airtable fetch failed: {exc}") from exc

        if not isinstance(data, dict):
            raise SourceFetchError("Airtable returned an unexpected payload")

        records = data.get('records') or []
        next_cursor = data.get('offset') or None
        logger.debug("Fetched %d records (next cursor: %s)", len(records), next_cursor)
        return Page(records=records, next_cursor=next_cursor)
