"""Storage configuration loading.

Resolution order, lowest to highest precedence:
defaults < YAML file (``storage:`` section) < environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .constants import (
    CONFIG_FILE,
    DEFAULT_LOCK_POLL_SECONDS,
    DEFAULT_LOCK_PREFIX,
    DEFAULT_LOCK_STALE_SECONDS,
    PROVIDERS,
)
from .errors import ConfigError, InvalidProviderError

logger = logging.getLogger(__name__)

# Environment variable -> StorageConfig field
ENV_OVERRIDES = {
    "CERTVAULT_PROVIDER": "provider",
    "CERTVAULT_CONTAINER": "container",
    "CERTVAULT_PREFIX": "prefix",
    "CERTVAULT_LOCK_STALE_SECONDS": "lock_stale_seconds",
    "CERTVAULT_LOCK_POLL_SECONDS": "lock_poll_seconds",
    "CERTVAULT_LOCK_PREFIX": "lock_prefix",
}

# Variables understood by existing S3 deployments
S3_ENV_OVERRIDES = {
    "AWS_S3_BUCKET": "container",
    "AWS_REGION": "region",
    "AWS_S3_ENDPOINT": "endpoint_url",
    "AWS_S3_FORCE_PATH_STYLE": "force_path_style",
}


class StorageConfig(BaseModel):
    """
    Where blobs and lock blobs live, and how the lock protocol is tuned.

    Providers:
    - "fs": container is a local directory (default: user data dir)
    - "azure": container is an Azure container, credentials from
      AZURE_STORAGE_CONNECTION_STRING
    - "s3": container is a bucket, credentials from boto3's default chain
    """
    provider: str = "fs"            # "fs" | "azure" | "s3"
    container: str = ""             # Directory, container or bucket name
    prefix: str = ""                # Optional key prefix inside the container

    # S3 settings
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    force_path_style: bool = False

    # Lock protocol settings
    lock_stale_seconds: float = DEFAULT_LOCK_STALE_SECONDS
    lock_poll_seconds: float = DEFAULT_LOCK_POLL_SECONDS
    lock_prefix: str = DEFAULT_LOCK_PREFIX

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in PROVIDERS:
            raise InvalidProviderError(v)
        return v

    @field_validator("lock_stale_seconds", "lock_poll_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("lock timings must be positive")
        return v

    @field_validator("prefix", "lock_prefix")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        return v.strip("/")


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read the storage section from a YAML config file."""
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at top level of {path}")

    section = data.get("storage", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected 'storage' to be a mapping in {path}")
    return section


def _env_values(environ: Dict[str, str]) -> Dict[str, Any]:
    """Collect config values from environment variables."""
    values: Dict[str, Any] = {}

    if environ.get("AWS_S3_BUCKET"):
        values["provider"] = "s3"
        for var, name in S3_ENV_OVERRIDES.items():
            if environ.get(var):
                values[name] = environ[var]
        if "force_path_style" in values:
            values["force_path_style"] = values["force_path_style"].lower() in ("true", "1", "yes")

    for var, name in ENV_OVERRIDES.items():
        if environ.get(var):
            values[name] = environ[var]

    return values


def load_storage_config(
    path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> StorageConfig:
    """
    Load storage configuration.

    Args:
        path: YAML config file. Defaults to ./certvault.yaml if present.
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated StorageConfig

    Raises:
        ConfigError: If the file is missing/malformed or values are invalid
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        values.update(_read_yaml(path))
    else:
        default_path = Path.cwd() / CONFIG_FILE
        if default_path.exists():
            values.update(_read_yaml(default_path))

    values.update(_env_values(environ))
    logger.debug("Storage config values: %s", sorted(values))

    try:
        return StorageConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid storage configuration: {e}") from e
