"""Hierarchical key/value blob store on top of an object client.

Object stores have no directories. Directories are simulated from key
prefixes: ``stat`` reports a key as a directory when other keys live under
it, and non-recursive ``list`` collapses deeper keys to their next path
segment.
"""

import logging
from typing import List, Optional

from .errors import NotExistError
from .models import KeyInfo
from .storage.base import ObjectClient
from .utils import join_key, normalize_key

logger = logging.getLogger(__name__)


class BlobStore:
    """
    Opaque byte blobs stored under slash-delimited keys.

    Each instance owns its client handle, so several independently
    configured stores can coexist in one process. An optional prefix
    namespaces every key inside a shared container; callers never see it.

    Errors:
        NotExistError from load/delete/stat when the key is absent.
        TransientStoreError from any call when the client fails. There are
        no internal retries.
    """

    def __init__(self, client: ObjectClient, prefix: str = ""):
        """
        Initialize blob store.

        Args:
            client: Object client handling the actual I/O
            prefix: Optional key prefix inside the container
        """
        self.client = client
        self.prefix = prefix.strip("/")

    def store(self, key: str, content: bytes) -> None:
        """Write content under key, replacing any previous value."""
        if not isinstance(content, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"content must be bytes-like, got {type(content).__name__}"
            )
        full = self._full_key(key)
        data = bytes(content)
        self.client.put_object(full, data)
        logger.debug("Stored %s (%d bytes)", full, len(data))

    def load(self, key: str) -> bytes:
        """
        Read the content stored under key.

        Raises:
            NotExistError: If the key does not exist
        """
        norm = normalize_key(key)
        try:
            return self.client.get_object(self._full_key(norm))
        except NotExistError as e:
            raise NotExistError(norm) from e

    def exists(self, key: str) -> bool:
        """
        Check whether an object is stored under key.

        Best-effort: any failure (invalid key, store error) is reported as
        False.
        """
        try:
            self.client.head_object(self._full_key(key))
            return True
        except NotExistError:
            return False
        except Exception as e:
            logger.debug("Existence check for %r failed, reporting absent: %s", key, e)
            return False

    def delete(self, key: str) -> None:
        """
        Remove the object stored under key.

        Raises:
            NotExistError: If the key does not exist
        """
        norm = normalize_key(key)
        try:
            self.client.delete_object(self._full_key(norm))
        except NotExistError as e:
            raise NotExistError(norm) from e
        logger.debug("Deleted %s", norm)

    def stat(self, key: str) -> KeyInfo:
        """
        Get metadata for key.

        A literal object reports its size and modification time. A key that
        only prefixes other keys reports is_directory=True with the newest
        modification time beneath it.

        Raises:
            NotExistError: If neither an object nor a prefix exists
        """
        norm = normalize_key(key)
        full = self._full_key(norm)

        try:
            entry = self.client.head_object(full)
        except NotExistError:
            pass
        else:
            return KeyInfo(
                key=norm,
                size=entry.size,
                modified=entry.last_modified,
                is_directory=False,
            )

        newest = None
        for entry in self.client.list_objects(full + "/"):
            if newest is None or entry.last_modified > newest:
                newest = entry.last_modified

        if newest is not None:
            return KeyInfo(key=norm, size=0, modified=newest, is_directory=True)
        raise NotExistError(norm)

    def list(self, prefix: str = "", recursive: bool = False) -> List[str]:
        """
        List keys under prefix.

        Matching happens on segment boundaries: "a" matches "a/b" but never
        "ab/c". Recursive listing returns every key at any depth.
        Non-recursive listing returns one entry per distinct next segment
        (e.g. "a/b" for "a/b/c" and "a/b/d"). Order is first-seen.

        Args:
            prefix: Key prefix ("" lists from the root)
            recursive: Descend into all levels

        Returns:
            List of keys, empty when nothing matches
        """
        norm: Optional[str] = normalize_key(prefix) if prefix.strip("/") else None
        if norm is not None:
            search = self._full_key(norm) + "/"
        else:
            search = self.prefix + "/" if self.prefix else ""

        keys: List[str] = []
        seen = set()
        for entry in self.client.list_objects(search):
            rel = entry.key[len(search):]
            if not rel:
                continue
            if not recursive:
                rel = rel.split("/", 1)[0]
            key = f"{norm}/{rel}" if norm else rel
            if key not in seen:
                seen.add(key)
                keys.append(key)
        return keys

    def _full_key(self, key: str) -> str:
        """Map a caller key to the object key inside the container."""
        return join_key(self.prefix, normalize_key(key))
