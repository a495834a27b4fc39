"""Shared test fixtures and utilities."""

import pytest

from certvault.blob_store import BlobStore
from certvault.cert_storage import CertStorage
from certvault.locks import LockManager
from certvault.storage.fs import FilesystemObjectClient

from tests.fixtures.sample_site import SITE_CONTENT


@pytest.fixture
def store_dir(tmp_path):
    """Directory shared by every client created in a test."""
    return tmp_path / "store"


@pytest.fixture
def fs_client(store_dir):
    """Filesystem object client rooted in a temp directory."""
    return FilesystemObjectClient(store_dir)


@pytest.fixture
def blob_store(fs_client):
    """Blob store over the filesystem client."""
    return BlobStore(fs_client)


@pytest.fixture
def make_manager(store_dir):
    """Factory for independent lock managers sharing one backing directory.

    Each manager gets its own client and blob store, like separate
    processes pointed at the same bucket.
    """
    def _make(stale_after: float = 30.0, poll_interval: float = 0.01, **kwargs):
        store = BlobStore(FilesystemObjectClient(store_dir))
        return LockManager(store, stale_after=stale_after, poll_interval=poll_interval, **kwargs)
    return _make


@pytest.fixture
def make_storage(store_dir):
    """Factory for independent CertStorage instances over one directory."""
    def _make(**kwargs):
        kwargs.setdefault("poll_interval", 0.01)
        return CertStorage(FilesystemObjectClient(store_dir), **kwargs)
    return _make


@pytest.fixture
def site_files(blob_store):
    """Store a certificate, private key and metadata for example.com."""
    for key, content in SITE_CONTENT.items():
        blob_store.store(key, content)
    return list(SITE_CONTENT)
