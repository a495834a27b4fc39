"""certvault - object store backed certificate storage with distributed locks."""

from .blob_store import BlobStore
from .cert_storage import CertStorage
from .config import StorageConfig, load_storage_config
from .constants import CERTVAULT_VERSION
from .errors import CertVaultError, NotExistError, TransientStoreError
from .locks import LockManager
from .models import KeyInfo, LockRecord

__version__ = CERTVAULT_VERSION

__all__ = [
    "BlobStore",
    "CertStorage",
    "CertVaultError",
    "KeyInfo",
    "LockManager",
    "LockRecord",
    "NotExistError",
    "StorageConfig",
    "TransientStoreError",
    "load_storage_config",
]
