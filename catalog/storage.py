from django.core.files.storage import storages
from django.utils.functional import LazyObject


class LazyImageStorage(LazyObject):
    def _setup(self):
        self._wrapped = storages['images']


# Lazy so that tests can override STORAGES or swap the wrapped backend
IMAGE_STORAGE = LazyImageStorage()
