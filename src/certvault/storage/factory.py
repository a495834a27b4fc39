"""Factory for creating object store clients."""

import os
from pathlib import Path

from ..config import StorageConfig
from ..errors import ConfigError, InvalidProviderError
from .base import ObjectClient
from .fs import FilesystemObjectClient


def default_fs_root() -> Path:
    """Get platform-appropriate directory for the filesystem store."""
    import platformdirs
    return Path(platformdirs.user_data_dir("certvault", "certvault")) / "store"


def validate_azure_config(config: StorageConfig) -> None:
    """
    Early validation of Azure configuration.

    Args:
        config: Storage config to validate

    Raises:
        ConfigError: If configuration is invalid
    """
    if not config.container:
        raise ConfigError("storage.container required for Azure blob storage")

    if "AZURE_STORAGE_CONNECTION_STRING" not in os.environ:
        raise ConfigError(
            "Set AZURE_STORAGE_CONNECTION_STRING and storage.container "
            "for Azure blob storage"
        )


def validate_s3_config(config: StorageConfig) -> None:
    """
    Early validation of S3 configuration.

    Raises:
        ConfigError: If no bucket is configured
    """
    if not config.container:
        raise ConfigError("storage.container (bucket) or AWS_S3_BUCKET required for S3 storage")


def make_object_client(config: StorageConfig) -> ObjectClient:
    """
    Create object client instance based on config.

    Args:
        config: Storage configuration

    Returns:
        ObjectClient for the configured provider

    Raises:
        ConfigError: If configuration is invalid
        InvalidProviderError: If provider is not supported
    """
    if config.provider == "fs":
        root = Path(config.container) if config.container else default_fs_root()
        return FilesystemObjectClient(root)

    elif config.provider == "azure":
        validate_azure_config(config)
        from .azure import AzureObjectClient
        conn_str = os.environ["AZURE_STORAGE_CONNECTION_STRING"]
        return AzureObjectClient(conn_str, config.container)

    elif config.provider == "s3":
        validate_s3_config(config)
        from .s3 import S3ObjectClient
        return S3ObjectClient(
            bucket=config.container,
            region=config.region,
            endpoint_url=config.endpoint_url,
            force_path_style=config.force_path_style,
        )

    else:
        raise InvalidProviderError(config.provider)
