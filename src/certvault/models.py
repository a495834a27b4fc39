"""Data models for stored blobs and lock records.

Blob metadata is never stored separately: ``KeyInfo`` is derived from the
object store listing. ``LockRecord`` is the JSON payload of a lock blob.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator

from .utils import utcnow


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ObjectEntry(BaseModel):
    """Single object as reported by an object client listing."""
    key: str                    # Full object key, including any store prefix
    size: int                   # Content length in bytes
    last_modified: datetime     # Aware UTC timestamp

    @field_validator("last_modified")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class KeyInfo(BaseModel):
    """Metadata for a key, as returned by ``BlobStore.stat``."""
    key: str
    size: int = 0
    modified: Optional[datetime] = None
    is_directory: bool = False  # True when the key is only a common prefix


class LockRecord(BaseModel):
    """
    Content of a lock blob.

    The holder token is unique per acquisition attempt, which is how a
    caller recognises its own write when reading the lock blob back.
    """
    holder: str
    acquired_at: datetime

    @field_validator("acquired_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    def age(self, now: Optional[datetime] = None) -> float:
        """Seconds elapsed since the lock was written."""
        now = now or utcnow()
        return (now - self.acquired_at).total_seconds()

    def is_stale(self, stale_after: float, now: Optional[datetime] = None) -> bool:
        """Check whether the holder is presumed crashed or abandoned."""
        return self.age(now) > stale_after
