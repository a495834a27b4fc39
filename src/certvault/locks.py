"""Distributed locks built from plain blob store operations.

The object store offers put/get/delete/list and nothing else: no
compare-and-swap, no leases, no notifications. A lock is therefore a blob
whose presence means "held" and whose embedded timestamp lets other callers
decide when the holder is presumed dead.

Protocol for ``lock(key)``, repeated until the lock is held:

1. Read the lock blob.
2. Absent: write a record carrying a fresh holder token, read it back.
   If the token read back is ours, the lock is held. If another caller's
   token is there, that caller won the race and we back off.
3. Present and older than ``stale_after``: read it again and, if it is still
   the same record, force-delete it and retry immediately. If it changed,
   retry without deleting.
4. Present and fresh: sleep ``poll_interval`` and retry.

Transient store errors inside the loop are treated like "held by someone
else". There is no timeout; callers needing one must impose their own.

Known weakness: the store has no atomic create-if-absent, so two callers
that both observe "absent" can both write. The read-back narrows the window
but cannot close it (a slower writer can still overwrite after the other
caller's read-back). Short critical sections and the staleness window bound
the damage. This is weaker than a consensus lock.

Stale reclamation has a similar gap. The second read only shrinks the
interval between deciding a record is stale and deleting it. A caller that
reclaims and writes a fresh record inside that interval can still lose it.
"""

import contextlib
import logging
import os
import socket
import time
import uuid
from typing import Iterator, Optional

from pydantic import ValidationError

from .blob_store import BlobStore
from .constants import (
    DEFAULT_LOCK_POLL_SECONDS,
    DEFAULT_LOCK_PREFIX,
    DEFAULT_LOCK_STALE_SECONDS,
    LOCK_SUFFIX,
)
from .errors import NotExistError, TransientStoreError
from .models import LockRecord
from .utils import join_key, normalize_key, utcnow

logger = logging.getLogger(__name__)


def _default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class LockManager:
    """
    Mutual exclusion over named resources across processes and machines.

    All coordination state lives in the blob store; there is no in-process
    lock table. Two managers pointed at the same store exclude each other
    exactly like two processes would.

    Attributes:
        store: Blob store holding the lock blobs
        stale_after: Seconds after which an unreleased lock is reclaimable
        poll_interval: Seconds to sleep between acquisition attempts
        lock_prefix: Key namespace for lock blobs
    """

    def __init__(
        self,
        store: BlobStore,
        stale_after: float = DEFAULT_LOCK_STALE_SECONDS,
        poll_interval: float = DEFAULT_LOCK_POLL_SECONDS,
        lock_prefix: str = DEFAULT_LOCK_PREFIX,
        holder: Optional[str] = None,
    ):
        """
        Initialize lock manager.

        Args:
            store: Blob store to keep lock blobs in
            stale_after: Staleness threshold in seconds
            poll_interval: Backoff between attempts in seconds
            lock_prefix: Namespace for lock blobs, kept apart from data keys
            holder: Diagnostic holder name (default: hostname:pid)
        """
        if stale_after <= 0 or poll_interval <= 0:
            raise ValueError("stale_after and poll_interval must be positive")
        self.store = store
        self.stale_after = stale_after
        self.poll_interval = poll_interval
        self.lock_prefix = lock_prefix.strip("/")
        self.holder = holder or _default_holder()

    def lock_key(self, key: str) -> str:
        """Key of the lock blob protecting ``key``."""
        return join_key(self.lock_prefix, normalize_key(key) + LOCK_SUFFIX)

    def lock(self, key: str) -> None:
        """
        Block until the lock on key is held by this caller.

        Polls with no upper bound on attempts.
        """
        lock_key = self.lock_key(key)
        token = f"{self.holder}:{uuid.uuid4().hex}"
        attempts = 0

        while True:
            attempts += 1
            try:
                current = self._read(lock_key)

                if current is None:
                    self._write(lock_key, token)
                    confirmed = self._read(lock_key)
                    if confirmed is not None and confirmed.holder == token:
                        logger.debug("Acquired lock %s after %d attempt(s)", key, attempts)
                        return
                    logger.debug(
                        "Lost race for lock %s to %s",
                        key, confirmed.holder if confirmed else "(released)"
                    )

                elif current.is_stale(self.stale_after):
                    # Another caller may have reclaimed and re-acquired
                    # since our read. Only delete the record we judged stale.
                    latest = self._read(lock_key)
                    if latest is None or latest != current:
                        logger.debug("Stale lock %s changed before removal, retrying", key)
                        continue
                    logger.warning(
                        "Removing stale lock %s held by %s (age %.1fs > %.1fs)",
                        key, current.holder, current.age(), self.stale_after
                    )
                    with contextlib.suppress(NotExistError):
                        self.store.delete(lock_key)
                    continue

            except TransientStoreError as e:
                logger.debug("Store error while acquiring lock %s, will retry: %s", key, e)

            time.sleep(self.poll_interval)

    def unlock(self, key: str) -> None:
        """
        Release the lock on key.

        Idempotent: a lock that is already gone (released, or reclaimed as
        stale by another caller) is not an error.
        """
        try:
            self.store.delete(self.lock_key(key))
            logger.debug("Released lock %s", key)
        except NotExistError:
            logger.debug("Lock %s already released", key)

    def holder_of(self, key: str) -> Optional[LockRecord]:
        """Get the current lock record for key, None if not locked."""
        return self._read(self.lock_key(key))

    def is_locked(self, key: str) -> bool:
        """Check whether a non-stale lock blob exists for key."""
        record = self.holder_of(key)
        return record is not None and not record.is_stale(self.stale_after)

    @contextlib.contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """
        Hold the lock on key for the duration of a with-block.

        Example:
            with manager.locked("acme/example.com"):
                store.store("acme/example.com/cert.crt", data)
        """
        self.lock(key)
        try:
            yield
        finally:
            self.unlock(key)

    def _read(self, lock_key: str) -> Optional[LockRecord]:
        """Read a lock blob, None when absent.

        Content that is not a valid record (written by another tool) is
        aged by the blob's modification time.
        """
        try:
            raw = self.store.load(lock_key)
        except NotExistError:
            return None

        try:
            return LockRecord.model_validate_json(raw)
        except ValidationError:
            try:
                info = self.store.stat(lock_key)
            except NotExistError:
                return None
            logger.debug("Lock blob %s has unrecognised content, using mtime", lock_key)
            return LockRecord(holder="unknown", acquired_at=info.modified or utcnow())

    def _write(self, lock_key: str, token: str) -> None:
        record = LockRecord(holder=token, acquired_at=utcnow())
        self.store.store(lock_key, record.model_dump_json().encode())
