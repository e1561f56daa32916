"""
Storage module - collection roots, object naming and the secure file store.
"""

from verbiforge.core.storage.namer import name_for, sanitize_filename
from verbiforge.core.storage.paths import (
    Collection,
    StorageRoots,
    ensure_roots,
    resolve_roots,
    resolve_roots_from_env,
)
from verbiforge.core.storage.store import SecureFileStore, StoredObject

__all__ = [
    "Collection",
    "StorageRoots",
    "ensure_roots",
    "resolve_roots",
    "resolve_roots_from_env",
    "name_for",
    "sanitize_filename",
    "SecureFileStore",
    "StoredObject",
]
