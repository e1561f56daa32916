"""
Verbiforge - Secure File Storage for Translation Projects
=========================================================

Encrypted-at-rest storage for uploaded source spreadsheets and translated
deliverables.

Security Notice:
- No secrets or plaintext are logged
- Fail-closed design pattern
- Every stored object is encrypted
"""

from verbiforge.core.config import StoreConfig
from verbiforge.core.errors import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    FileStoreError,
    NotFoundError,
    StorageIOError,
    StorageUnavailableError,
    ValidationError,
)
from verbiforge.core.logging import configure_logging
from verbiforge.core.storage import Collection, SecureFileStore, StoredObject

__version__ = "0.1.0"

__all__ = [
    "StoreConfig",
    "SecureFileStore",
    "StoredObject",
    "Collection",
    "configure_logging",
    "FileStoreError",
    "ConfigurationError",
    "StorageUnavailableError",
    "EncryptionError",
    "DecryptionError",
    "NotFoundError",
    "StorageIOError",
    "ValidationError",
    "__version__",
]
