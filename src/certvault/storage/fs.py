"""Filesystem object client for tests and single-host deployments."""

import logging
import os
import tempfile
import urllib.parse
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from ..errors import NotExistError, TransientStoreError
from ..models import ObjectEntry

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".certvault-tmp-"

# Object files end with this marker. Path segments are percent-encoded and
# encoding always escapes "@", so a directory name never ends with it.
OBJECT_SUFFIX = "@"


def _fsync_dir(path: Path) -> None:
    """Fsync a directory so a rename inside it is durable (best-effort)."""
    try:
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY

        fd = os.open(str(path), flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        # Expected on Windows or filesystems that don't support directory fsync
        logger.debug("Directory fsync not supported for %s", path)


def _encode(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


def _decode(name: str) -> str:
    return urllib.parse.unquote(name)


class FilesystemObjectClient:
    """
    Local filesystem object client (avoids MinIO/Azurite in unit tests).

    Layout: key "a/b/c" is stored in base_dir/a/b/c@. Every segment is
    percent-encoded, so like in a real object store the keys "a" (file
    "a@") and "a/b" (directory "a") can exist side by side.

    Several processes may share the same base_dir, which makes it usable
    for lock contention tests.
    """

    def __init__(self, base_dir: Path):
        """
        Initialize filesystem client.

        Args:
            base_dir: Base directory holding the objects
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """File holding the object stored under key."""
        *dirs, name = key.split("/")
        return self._dir_for(dirs) / (_encode(name) + OBJECT_SUFFIX)

    def put_object(self, key: str, data: bytes) -> None:
        """
        Write object atomically (temp file, fsync, rename).

        Args:
            key: Object key
            data: Object content
        """
        dest = self.path_for(key)
        tmp = None
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=dest.parent,
                prefix=_TMP_PREFIX,
                delete=False
            ) as f:
                tmp = Path(f.name)
                f.write(data)
                f.flush()
                os.fsync(f.fileno())

            os.replace(tmp, dest)
            _fsync_dir(dest.parent)
        except OSError as e:
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            raise TransientStoreError("put", key, str(e)) from e

    def get_object(self, key: str) -> bytes:
        """
        Read object content.

        Args:
            key: Object key

        Returns:
            File content
        """
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotExistError(key) from e
        except OSError as e:
            raise TransientStoreError("get", key, str(e)) from e

    def head_object(self, key: str) -> ObjectEntry:
        """
        Get object metadata without reading content.

        Args:
            key: Object key

        Returns:
            ObjectEntry for the key
        """
        path = self.path_for(key)
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotExistError(key) from e
        except OSError as e:
            raise TransientStoreError("head", key, str(e)) from e
        return self._entry(key, st)

    def delete_object(self, key: str) -> None:
        """
        Remove object file, then prune directories it leaves empty.

        Args:
            key: Object key
        """
        path = self.path_for(key)
        try:
            path.unlink()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotExistError(key) from e
        except OSError as e:
            raise TransientStoreError("delete", key, str(e)) from e
        self._prune(path.parent)

    def list_objects(self, prefix: str) -> Iterator[ObjectEntry]:
        """
        Walk base_dir and yield objects whose key starts with prefix.

        Args:
            prefix: Raw key prefix

        Returns:
            Iterator of ObjectEntry
        """
        # Only walk the deepest directory that can contain matches
        start = self.base_dir
        if "/" in prefix:
            start = self._dir_for(prefix.rsplit("/", 1)[0].split("/"))
        if not start.is_dir():
            return

        try:
            for dirpath, _dirnames, filenames in os.walk(start):
                rel_dir = Path(dirpath).relative_to(self.base_dir)
                key_dir = [_decode(part) for part in rel_dir.parts]
                for name in filenames:
                    if name.startswith(_TMP_PREFIX) or not name.endswith(OBJECT_SUFFIX):
                        continue
                    key = "/".join(key_dir + [_decode(name[:-len(OBJECT_SUFFIX)])])
                    if not key.startswith(prefix):
                        continue
                    try:
                        st = (Path(dirpath) / name).stat()
                    except FileNotFoundError:
                        # Deleted between walk and stat
                        continue
                    yield self._entry(key, st)
        except OSError as e:
            raise TransientStoreError("list", prefix, str(e)) from e

    def _dir_for(self, segments) -> Path:
        """Directory holding objects under the given key segments."""
        return self.base_dir.joinpath(*(_encode(s) for s in segments if s))

    def _prune(self, directory: Path) -> None:
        """Remove empty directories from directory up to base_dir."""
        while directory != self.base_dir and self.base_dir in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                # Not empty, or already removed/recreated by another writer
                break
            directory = directory.parent

    @staticmethod
    def _entry(key: str, st: os.stat_result) -> ObjectEntry:
        return ObjectEntry(
            key=key,
            size=st.st_size,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )
