"""Certificate storage: blob CRUD plus distributed locking in one object."""

import contextlib
from typing import Iterator, List

from .blob_store import BlobStore
from .config import StorageConfig
from .constants import (
    DEFAULT_LOCK_POLL_SECONDS,
    DEFAULT_LOCK_PREFIX,
    DEFAULT_LOCK_STALE_SECONDS,
)
from .locks import LockManager
from .models import KeyInfo
from .storage.base import ObjectClient
from .storage.factory import make_object_client


class CertStorage:
    """
    Storage backend for TLS certificates, private keys and ACME metadata.

    Typical use by an ACME client renewing example.com:

        storage.lock("acme/example.com/sites/example.com/lock")
        try:
            if not storage.exists(cert_key):
                storage.store(cert_key, issue_certificate())
        finally:
            storage.unlock("acme/example.com/sites/example.com/lock")

    Locks are advisory: CRUD calls never check them.
    """

    def __init__(
        self,
        client: ObjectClient,
        prefix: str = "",
        stale_after: float = DEFAULT_LOCK_STALE_SECONDS,
        poll_interval: float = DEFAULT_LOCK_POLL_SECONDS,
        lock_prefix: str = DEFAULT_LOCK_PREFIX,
    ):
        self.blobs = BlobStore(client, prefix=prefix)
        self.locks = LockManager(
            self.blobs,
            stale_after=stale_after,
            poll_interval=poll_interval,
            lock_prefix=lock_prefix,
        )

    @classmethod
    def from_config(cls, config: StorageConfig) -> "CertStorage":
        """Build storage with the client described by config."""
        return cls(
            make_object_client(config),
            prefix=config.prefix,
            stale_after=config.lock_stale_seconds,
            poll_interval=config.lock_poll_seconds,
            lock_prefix=config.lock_prefix,
        )

    def store(self, key: str, content: bytes) -> None:
        """Write content under key, replacing any previous value."""
        self.blobs.store(key, content)

    def load(self, key: str) -> bytes:
        """
        Read the content stored under key.

        Raises:
            NotExistError: If the key does not exist
        """
        return self.blobs.load(key)

    def delete(self, key: str) -> None:
        """
        Remove the object stored under key.

        Raises:
            NotExistError: If the key does not exist
        """
        self.blobs.delete(key)

    def exists(self, key: str) -> bool:
        """Check whether an object is stored under key (never raises)."""
        return self.blobs.exists(key)

    def stat(self, key: str) -> KeyInfo:
        """
        Get size and modification time for key.

        Keys that only prefix other keys report is_directory=True.

        Raises:
            NotExistError: If neither an object nor a prefix exists
        """
        return self.blobs.stat(key)

    def list(self, prefix: str = "", recursive: bool = False) -> List[str]:
        """List keys under prefix, one level deep unless recursive."""
        return self.blobs.list(prefix, recursive=recursive)

    def lock(self, key: str) -> None:
        """Block until the lock on key is held by this caller."""
        self.locks.lock(key)

    def unlock(self, key: str) -> None:
        """Release the lock on key. Releasing a lock that is gone is a no-op."""
        self.locks.unlock(key)

    @contextlib.contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the lock on key for the duration of a with-block."""
        with self.locks.locked(key):
            yield
