from abc import ABC, abstractmethod
from typing import NamedTuple, Optional


class Page(NamedTuple):
    records: list
    next_cursor: Optional[str] = None


class BaseSource(ABC):
    @abstractmethod
    def list_page(self, cursor=None) -> Page:
        """Fetch one page of raw records, starting at ``cursor`` (None for the first page)."""
