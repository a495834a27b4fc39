"""Utility functions for certvault."""

import re
from datetime import datetime, timezone

from .errors import InvalidKeyError

_SLASHES = re.compile(r"/{2,}")


def normalize_key(key: str) -> str:
    """Normalize a storage key to ``seg/seg/seg`` form.

    Repeated separators collapse, leading and trailing separators are
    stripped. Every key entering the store goes through here so that prefix
    matching always happens on segment boundaries.

    Examples:
        "/acme//example.com/" -> "acme/example.com"

    Raises:
        InvalidKeyError: If the key is empty or has "." / ".." segments
    """
    if not isinstance(key, str):
        raise InvalidKeyError(repr(key), "key must be a string")

    normalized = _SLASHES.sub("/", key.replace("\\", "/")).strip("/")
    if not normalized:
        raise InvalidKeyError(key, "key is empty")

    for segment in normalized.split("/"):
        if segment in (".", ".."):
            raise InvalidKeyError(key, "relative path segments are not allowed")

    return normalized


def join_key(*parts: str) -> str:
    """Join key parts with '/' skipping empty ones, then normalize."""
    return normalize_key("/".join(p for p in parts if p))


def utcnow() -> datetime:
    """Get current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_timestamp(dt: datetime) -> str:
    """Format a datetime for display.

    Examples:
        datetime(2025, 8, 26, 2, 51, 17, 317839, tzinfo=utc) -> "2025-08-26 02:51:17 UTC"
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
