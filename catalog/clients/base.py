from abc import ABC, abstractmethod

import requests


class BaseClient(ABC):
    @abstractmethod
    def make_session(self) -> requests.Session:
        """Create and configure an HTTP session."""

    @abstractmethod
    def download(self, session, url):
        """Download a single resource and return its bytes with the declared content type."""
