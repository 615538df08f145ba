import io
import logging
from typing import NamedTuple, Optional

import requests

from catalog.exceptions import ImageFetchFailure, ImageTooLarge

from .base import BaseClient

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
USER_AGENT = 'catalog-sync/0.1 (+image-fetch)'


class Download(NamedTuple):
    content: bytes
    content_type: Optional[str]


def _content_length(headers):
    try:
        return int(headers.get('Content-Length'))
    except (TypeError, ValueError):
        return None


class ImageClient(BaseClient):
    def __init__(self, max_bytes, timeout=30.0):
        self.max_bytes = max_bytes
        self.timeout = timeout

    def make_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({'User-Agent': USER_AGENT})
        return session

    def probe_size(self, session, url):
        """Declared size from a HEAD request, or None when the server does not say."""
        try:
            response = session.head(url, allow_redirects=True, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.debug("HEAD %s failed, falling back to GET: %s", url, exc)
            return None
        if not response.ok:
            return None
        return _content_length(response.headers)

    def check_size(self, size):
        if size is not None and size > self.max_bytes:
            raise ImageTooLarge(f"too large ({size} > {self.max_bytes} bytes)")

    def download(self, session, url) -> Download:
        try:
            with session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                self.check_size(_content_length(response.headers))

                buf = io.BytesIO()
                total = 0
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    total += len(chunk)
                    # Servers may omit or understate Content-Length
                    self.check_size(total)
                    buf.write(chunk)
                return Download(buf.getvalue(), response.headers.get('Content-Type'))
        except requests.exceptions.HTTPError as exc:
            raise ImageFetchFailure(f"HTTP {exc.response.status_code}") from exc
        except requests.exceptions.RequestException as exc:
            raise ImageFetchFailure(f"transfer failed: {exc.__class__.__name__}") from exc
