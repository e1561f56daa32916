"""Shared fixtures: cheap KDF parameters and stores rooted in tmp_path."""

import os

import pytest

from verbiforge.core.config import SecurityConfig, UploadPolicy
from verbiforge.core.crypto import CipherCodec, KeyRing
from verbiforge.core.storage import SecureFileStore, StorageRoots, ensure_roots
from verbiforge.security.audit import TamperAwareAuditLog

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def fast_kdf():
    """Argon2 parameters cheap enough for unit tests."""
    return SecurityConfig(kdf_time_cost=1, kdf_memory_cost=1024, kdf_parallelism=1)


@pytest.fixture
def key():
    return os.urandom(32)


@pytest.fixture
def codec(key):
    return CipherCodec(KeyRing(active=key))


@pytest.fixture
def roots(tmp_path):
    return ensure_roots(StorageRoots.under(tmp_path / "secure-files"))


@pytest.fixture
def store(roots, codec):
    return SecureFileStore(roots, codec, UploadPolicy())


@pytest.fixture
def audit_log(tmp_path):
    return TamperAwareAuditLog(tmp_path / "audit" / "audit.log")


@pytest.fixture
def xlsx_bytes():
    """Bytes shaped like an xlsx (zip) upload."""
    return b"PK\x03\x04" + os.urandom(4096) + b"[Content_Types].xml"
