"""
Storage Paths
=============

Resolves and prepares the two collection roots.

Resolution order for the base directory:
    1. Explicit directory from configuration / VERBIFORGE_STORAGE_DIR
    2. The platform persistent volume, if it is mounted
    3. ``secure-files`` under the application directory

Layout:
    <base>/uploads      originals as uploaded
    <base>/translated   translated deliverables
"""

from __future__ import annotations

import enum
import logging
import os
import platform
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Mapping, Optional

from verbiforge.core.config import RENDER_VOLUME_PATH
from verbiforge.core.errors import StorageUnavailableError

STORAGE_DIR_ENV: Final[str] = "VERBIFORGE_STORAGE_DIR"
LOCAL_DIR_NAME: Final[str] = "secure-files"

_log = logging.getLogger("verbiforge.storage")


class Collection(enum.Enum):
    """The two disjoint logical collections and their directory names."""

    ORIGINALS = "uploads"
    DELIVERABLES = "translated"

    @classmethod
    def select(cls, is_deliverable: bool) -> Collection:
        return cls.DELIVERABLES if is_deliverable else cls.ORIGINALS


@dataclass(frozen=True, slots=True)
class StorageRoots:
    """Absolute roots for both collections."""

    base: Path
    originals: Path
    deliverables: Path

    @classmethod
    def under(cls, base: Path) -> StorageRoots:
        base = Path(base).absolute()
        return cls(
            base=base,
            originals=base / Collection.ORIGINALS.value,
            deliverables=base / Collection.DELIVERABLES.value,
        )

    def root_for(self, collection: Collection) -> Path:
        if collection is Collection.ORIGINALS:
            return self.originals
        if collection is Collection.DELIVERABLES:
            return self.deliverables
        raise ValueError(f"Unknown collection: {collection!r}")


def resolve_roots(
    storage_dir: Optional[Path] = None,
    app_dir: Optional[Path] = None,
    volume_path: Path = RENDER_VOLUME_PATH,
) -> StorageRoots:
    """
    Pick the storage base directory by priority.

    Args:
        storage_dir: Explicit base directory (highest priority)
        app_dir: Application directory for the local fallback
        volume_path: Persistent volume mount point checked second

    Returns:
        StorageRoots under the chosen base
    """
    if storage_dir:
        base = Path(storage_dir)
        source = "explicit"
    elif volume_path.is_dir():
        base = volume_path / LOCAL_DIR_NAME
        source = "persistent volume"
    else:
        base = (app_dir or Path.cwd()) / LOCAL_DIR_NAME
        source = "application directory"

    roots = StorageRoots.under(base)
    _log.info("Storage base resolved from %s: %s", source, roots.base)
    return roots


def resolve_roots_from_env(
    env: Optional[Mapping[str, str]] = None,
    app_dir: Optional[Path] = None,
    volume_path: Path = RENDER_VOLUME_PATH,
) -> StorageRoots:
    """Resolve roots reading the explicit directory from the environment."""
    env = os.environ if env is None else env
    explicit = env.get(STORAGE_DIR_ENV)
    return resolve_roots(
        storage_dir=Path(explicit) if explicit else None,
        app_dir=app_dir,
        volume_path=volume_path,
    )


def ensure_roots(roots: StorageRoots) -> StorageRoots:
    """
    Create both roots with owner-only permissions and check they are writable.

    Raises:
        StorageUnavailableError: If a root cannot be created or written.
            Fatal at startup.
    """
    for directory in (roots.originals, roots.deliverables):
        try:
            directory.mkdir(mode=stat.S_IRWXU, parents=True, exist_ok=True)
            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)  # 700 - owner only
        except OSError as e:
            raise StorageUnavailableError(f"Cannot create storage root: {directory}") from e

        if not directory.is_dir():
            raise StorageUnavailableError(f"Storage root is not a directory: {directory}")
        if not os.access(directory, os.W_OK | os.X_OK):
            raise StorageUnavailableError(f"Storage root is not writable: {directory}")

    _log.debug("Storage roots ready under %s", roots.base)
    return roots


def is_path_within_directory(path: Path, directory: Path) -> bool:
    """
    Check if a path is safely within a directory (prevents path traversal).

    Symlinks are resolved on both sides before comparing.
    """
    try:
        resolved_path = path.resolve()
        resolved_dir = directory.resolve()
        return resolved_path.is_relative_to(resolved_dir) and resolved_path != resolved_dir
    except (OSError, ValueError, RuntimeError):
        return False
