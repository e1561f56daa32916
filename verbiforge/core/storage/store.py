"""
Secure File Store
=================

Encrypted-at-rest storage for uploaded originals and translated deliverables.

Security Properties:
- Every object is encrypted; there is no plaintext write path
- Objects live outside any web root under generated, traversal-safe names
- Writes are atomic (temp file in the same root, fsync, rename), so a
  partially written object is never visible under its handle
- Handles are re-validated on every read and delete
- Only the taxonomy in ``verbiforge.core.errors`` crosses this API

Concurrency:
    Each operation runs independently in a worker thread via
    ``asyncio.to_thread``; no lock is held across calls. Abandoning an
    awaited save does not stop the write, which still completes.

Usage:
    store = SecureFileStore.from_config(StoreConfig.load())

    if not (store.validate_size(len(data)) and store.validate_type(mime)):
        ...  # reject at the boundary

    stored = await store.save(data, "quote.xlsx", mime, "proj-123")
    content = await store.retrieve(stored.handle)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import platform
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from verbiforge.core.config import StoreConfig, UploadPolicy
from verbiforge.core.crypto.cipher import CipherCodec
from verbiforge.core.crypto.kdf import KeyRing
from verbiforge.core.errors import (
    DecryptionError,
    NotFoundError,
    StorageIOError,
    ValidationError,
)
from verbiforge.core.storage.namer import name_for
from verbiforge.core.storage.paths import (
    Collection,
    StorageRoots,
    ensure_roots,
    is_path_within_directory,
    resolve_roots,
)
from verbiforge.security.audit import (
    AuditEventType,
    AuditSeverity,
    TamperAwareAuditLog,
)
from verbiforge.utils.validators import is_allowed_size, is_allowed_type, is_valid_handle

TEMP_PREFIX = ".tmp-"

_log = logging.getLogger("verbiforge.store")


def _fsync_dir(directory: Path) -> None:
    """Persist a rename by syncing its directory entry."""
    if platform.system().lower() == "windows":
        return
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError as e:
        _log.warning("Could not open %s to sync the rename: %s", directory, e)
        return
    try:
        os.fsync(fd)
    except OSError as e:
        _log.warning("Could not sync directory %s: %s", directory, e)
    finally:
        os.close(fd)


@dataclass(frozen=True, slots=True)
class StoredObject:
    """
    Metadata returned by ``save``.

    Only ``handle`` is durable; the caller persists the rest (for example
    in the project record) if it needs them later.
    """

    handle: str
    collection: Collection
    original_filename: str
    mime_type: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        """Shape persisted by request handlers alongside the project."""
        return {
            "handle": self.handle,
            "originalFilename": self.original_filename,
            "mimeType": self.mime_type,
            "size": self.size,
        }


class SecureFileStore:
    """
    Save, retrieve and delete encrypted objects in two collections.

    The store holds no mutable state besides its configuration; it is
    safe to share one instance between all request handlers.
    """

    __slots__ = ("_roots", "_codec", "_policy", "_audit", "_log")

    def __init__(
        self,
        roots: StorageRoots,
        codec: CipherCodec,
        policy: Optional[UploadPolicy] = None,
        audit: Optional[TamperAwareAuditLog] = None,
    ) -> None:
        self._roots = roots
        self._codec = codec
        self._policy = policy or UploadPolicy()
        self._audit = audit
        self._log = _log

    @classmethod
    def from_config(
        cls,
        config: StoreConfig,
        audit: Optional[TamperAwareAuditLog] = None,
    ) -> SecureFileStore:
        """
        Build a ready store at process start.

        Derives the key ring, resolves and creates the storage roots.

        Raises:
            ConfigurationError: Missing secret or invalid KDF settings
            StorageUnavailableError: Roots cannot be created or written
        """
        keyring = KeyRing.from_secrets(
            config.secret,
            config.previous_secrets,
            config.security,
        )
        roots = ensure_roots(
            resolve_roots(
                storage_dir=config.paths.storage_dir,
                app_dir=config.paths.app_dir,
                volume_path=config.paths.volume_path,
            )
        )
        store = cls(roots, CipherCodec(keyring), config.uploads, audit)
        store._log.info(
            "Secure file store ready (base=%s, retired_keys=%d)",
            roots.base,
            len(keyring.retired),
        )
        store._record(
            AuditEventType.STORE_STARTED,
            "File store started",
            details={"retired_keys": len(keyring.retired)},
        )
        return store

    @property
    def roots(self) -> StorageRoots:
        return self._roots

    @property
    def policy(self) -> UploadPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Boundary predicates (evaluated by the caller before save)
    # ------------------------------------------------------------------

    def validate_type(self, mime_type: Optional[str]) -> bool:
        """True if the MIME type is in the configured allow-list."""
        return is_allowed_type(mime_type, self._policy)

    def validate_size(self, byte_length: int) -> bool:
        """True if the size is within the configured maximum."""
        return is_allowed_size(byte_length, self._policy)

    # ------------------------------------------------------------------
    # Async API
    # ------------------------------------------------------------------

    async def save(
        self,
        content: bytes,
        original_filename: str,
        mime_type: str,
        owner_id: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> StoredObject:
        """Encrypt and store ``content``; see :meth:`save_sync`."""
        return await asyncio.to_thread(
            self.save_sync, content, original_filename, mime_type, owner_id, collection, actor
        )

    async def retrieve(
        self,
        handle: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> bytes:
        """Read and decrypt an object; see :meth:`retrieve_sync`."""
        return await asyncio.to_thread(self.retrieve_sync, handle, collection, actor)

    async def delete(
        self,
        handle: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> bool:
        """Remove an object; see :meth:`delete_sync`."""
        return await asyncio.to_thread(self.delete_sync, handle, collection, actor)

    async def exists(self, handle: str, collection: Collection = Collection.ORIGINALS) -> bool:
        return await asyncio.to_thread(self.exists_sync, handle, collection)

    async def list_handles(self, collection: Collection = Collection.ORIGINALS) -> list[str]:
        return await asyncio.to_thread(self.list_handles_sync, collection)

    async def rotate(
        self,
        handle: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> bool:
        """Re-encrypt under the active key; see :meth:`rotate_sync`."""
        return await asyncio.to_thread(self.rotate_sync, handle, collection, actor)

    # ------------------------------------------------------------------
    # Synchronous implementation
    # ------------------------------------------------------------------

    def save_sync(
        self,
        content: bytes,
        original_filename: str,
        mime_type: str,
        owner_id: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> StoredObject:
        """
        Encrypt and atomically write a new object.

        Args:
            content: Plaintext bytes, already fully received
            original_filename: Client-supplied filename (untrusted)
            mime_type: Client-supplied MIME type
            owner_id: Project/owner identifier used in the handle
            collection: Target collection
            actor: Caller identity for the audit trail

        Returns:
            StoredObject with the new handle

        Raises:
            ValidationError: If ``content`` is empty
            EncryptionError: If the cipher primitive fails
            StorageIOError: If the write or the audit append fails; nothing
                is left on disk in either case
        """
        if not content:
            raise ValidationError("Cannot store empty content", rule="empty")

        plaintext = bytes(content)
        root = self._roots.root_for(collection)
        handle = name_for(owner_id, original_filename, collection is Collection.DELIVERABLES)
        envelope = self._codec.encrypt(plaintext)

        self._write_atomic(root, handle, envelope)

        try:
            self._record(
                AuditEventType.FILE_STORED,
                "Object stored",
                actor=actor,
                collection=collection,
                handle=handle,
                details={"size": len(plaintext), "mime_type": mime_type},
            )
        except StorageIOError:
            # A failed save leaves nothing on disk
            with contextlib.suppress(FileNotFoundError):
                (root / handle).unlink()
            raise

        self._log.info("Stored %s in %s (%d bytes)", handle, collection.value, len(plaintext))

        return StoredObject(
            handle=handle,
            collection=collection,
            original_filename=original_filename,
            mime_type=mime_type,
            size=len(plaintext),
        )

    def retrieve_sync(
        self,
        handle: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> bytes:
        """
        Read and decrypt an object.

        Raises:
            NotFoundError: Handle is malformed, escapes the root, or the
                file does not exist
            DecryptionError: Wrong key, truncated or modified envelope
            StorageIOError: Any other read failure
        """
        path = self._resolve(handle, collection)
        envelope = self._read(path, handle, collection, actor)

        try:
            plaintext = self._codec.decrypt(envelope)
        except DecryptionError:
            self._log.warning("Decryption failed for %s in %s", handle, collection.value)
            self._record(
                AuditEventType.DECRYPTION_FAILED,
                "Object could not be decrypted",
                severity=AuditSeverity.WARNING,
                actor=actor,
                collection=collection,
                handle=handle,
            )
            raise

        self._log.debug("Retrieved %s from %s", handle, collection.value)
        self._record(
            AuditEventType.FILE_RETRIEVED,
            "Object retrieved",
            actor=actor,
            collection=collection,
            handle=handle,
        )
        return plaintext

    def delete_sync(
        self,
        handle: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> bool:
        """
        Remove an object. Idempotent.

        Returns:
            True if a file was removed, False if it was already absent
            (malformed handles name nothing and are absent)

        Raises:
            StorageIOError: If the file exists but cannot be removed
        """
        try:
            path = self._resolve(handle, collection)
        except NotFoundError:
            self._log.warning("Rejected delete of malformed handle in %s", collection.value)
            return False

        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageIOError("Failed to delete stored object") from e

        self._log.info("Deleted %s from %s", handle, collection.value)
        self._record(
            AuditEventType.FILE_DELETED,
            "Object deleted",
            actor=actor,
            collection=collection,
            handle=handle,
        )
        return True

    def exists_sync(self, handle: str, collection: Collection = Collection.ORIGINALS) -> bool:
        try:
            return self._resolve(handle, collection).is_file()
        except NotFoundError:
            return False

    def list_handles_sync(self, collection: Collection = Collection.ORIGINALS) -> list[str]:
        """
        List stored handles. The directory is the only inventory.

        In-flight temp files are excluded.
        """
        root = self._roots.root_for(collection)
        try:
            with os.scandir(root) as entries:
                return sorted(
                    entry.name
                    for entry in entries
                    if entry.is_file(follow_symlinks=False) and is_valid_handle(entry.name)
                )
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageIOError("Failed to list stored objects") from e

    def rotate_sync(
        self,
        handle: str,
        collection: Collection = Collection.ORIGINALS,
        actor: Optional[str] = None,
    ) -> bool:
        """
        Re-encrypt an object under the active key if it was sealed with a
        retired one. The rewrite is atomic and keeps the same handle.

        Returns:
            True if the object was rewritten

        Raises:
            NotFoundError, DecryptionError, StorageIOError
        """
        path = self._resolve(handle, collection)
        envelope = self._read(path, handle, collection, actor)

        plaintext, stale = self._codec.unseal(envelope)
        if not stale:
            return False

        self._write_atomic(self._roots.root_for(collection), handle, self._codec.encrypt(plaintext))

        self._log.info("Re-encrypted %s in %s under the active key", handle, collection.value)
        self._record(
            AuditEventType.FILE_ROTATED,
            "Object re-encrypted under active key",
            actor=actor,
            collection=collection,
            handle=handle,
        )
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, handle: str, collection: Collection) -> Path:
        """Map a handle to a path strictly inside the collection root."""
        if not is_valid_handle(handle):
            raise NotFoundError("Stored object not found")

        root = self._roots.root_for(collection)
        path = root / handle
        if not is_path_within_directory(path, root):
            raise NotFoundError("Stored object not found")
        return path

    def _read(
        self,
        path: Path,
        handle: str,
        collection: Collection,
        actor: Optional[str],
    ) -> bytes:
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            self._record(
                AuditEventType.FILE_NOT_FOUND,
                "Object not found",
                severity=AuditSeverity.WARNING,
                actor=actor,
                collection=collection,
                handle=handle,
            )
            raise NotFoundError("Stored object not found") from e
        except OSError as e:
            raise StorageIOError("Failed to read stored object") from e

    @staticmethod
    def _write_atomic(root: Path, handle: str, data: bytes) -> None:
        """
        Write ``data`` under ``root/handle`` via a temp file and rename.

        Ordering: root ensured, temp written and fsynced, renamed, root
        directory fsynced.
        """
        try:
            root.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".part", dir=root)
        except OSError as e:
            raise StorageIOError("Failed to prepare storage for write") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, root / handle)
        except OSError as e:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise StorageIOError("Failed to write stored object") from e
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

        _fsync_dir(root)

    def _record(
        self,
        event_type: AuditEventType,
        description: str,
        severity: AuditSeverity = AuditSeverity.INFO,
        actor: Optional[str] = None,
        collection: Optional[Collection] = None,
        handle: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        if self._audit is None:
            return
        try:
            self._audit.log(
                event_type,
                description,
                severity=severity,
                actor=actor,
                collection=collection.value if collection else None,
                handle=handle,
                details=details,
            )
        except OSError as e:
            raise StorageIOError("Failed to append audit record") from e

    def __repr__(self) -> str:
        return f"SecureFileStore(base={self._roots.base})"
