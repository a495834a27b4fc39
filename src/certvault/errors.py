"""Custom exceptions for certvault.

This module defines typed exceptions so callers can tell a missing key
apart from a failing object store.
"""


class CertVaultError(RuntimeError):
    """Base class for all certvault errors."""
    pass


# Storage Errors
class StorageError(CertVaultError):
    """Base class for storage-related errors."""
    pass


class NotExistError(StorageError):
    """Key (or lock) does not exist in the object store."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Key does not exist: {key}")


class TransientStoreError(StorageError):
    """Object store call failed (network, throttling, service error).

    The original client exception is available as ``__cause__``.
    """

    def __init__(self, operation: str, key: str, reason: str = ""):
        self.operation = operation
        self.key = key
        message = f"Object store {operation} failed for '{key}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidKeyError(CertVaultError, ValueError):
    """Key cannot be used as a storage path."""

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Invalid key {key!r}: {reason}")


# Configuration Errors
class ConfigError(CertVaultError):
    """Base class for configuration errors."""
    pass


class InvalidProviderError(ConfigError):
    """Storage provider is unknown."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"Storage provider '{provider}' not supported. "
            f"Use one of: fs, azure, s3."
        )
