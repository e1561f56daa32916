"""
Error Taxonomy
==============

Every failure that crosses the file store's public contract is one of
the exceptions below. Low-level ``OSError`` and cryptography exceptions
are chained (``raise ... from``) but never raised directly.

Hierarchy:
    FileStoreError
    ├── ConfigurationError
    │   └── StorageUnavailableError
    ├── EncryptionError
    ├── DecryptionError
    ├── NotFoundError
    ├── StorageIOError
    └── ValidationError
"""

from __future__ import annotations

from typing import Optional


class FileStoreError(Exception):
    """Base class for all file store errors."""
    pass


class ConfigurationError(FileStoreError):
    """
    Raised when the store cannot be configured.

    Missing encryption secret, invalid settings, unusable storage roots.
    This is fatal at startup; the process should not serve traffic.
    """
    pass


class StorageUnavailableError(ConfigurationError):
    """Raised when a storage root cannot be created or is not writable."""
    pass


class EncryptionError(FileStoreError):
    """Raised when the cipher primitive fails during encryption."""
    pass


class DecryptionError(FileStoreError):
    """
    Raised when decryption fails.

    This is a generic error that doesn't reveal the cause (wrong key,
    truncated data, tampering) to prevent information leakage.
    """
    pass


class NotFoundError(FileStoreError):
    """Raised when a handle does not resolve to a stored object."""
    pass


class StorageIOError(FileStoreError):
    """Raised when the disk fails while reading or writing an object."""
    pass


class ValidationError(FileStoreError, ValueError):
    """
    Raised when input is rejected before storage.

    Attributes:
        rule: Short name of the violated rule (e.g. ``"max_size"``)
    """

    def __init__(self, message: str, rule: Optional[str] = None) -> None:
        super().__init__(message)
        self.rule = rule
