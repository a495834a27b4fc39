"""Object store clients the blob store is built on."""

from .base import ObjectClient
from .factory import make_object_client
from .fs import FilesystemObjectClient

__all__ = ["ObjectClient", "FilesystemObjectClient", "make_object_client"]
