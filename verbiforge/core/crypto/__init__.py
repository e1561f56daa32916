"""
Cryptographic Core
==================

Key derivation and the envelope codec used for encryption at rest.

Architecture:
    1. Argon2id: operator secret -> 256-bit key (once per process)
    2. KeyRing: active key plus retired keys for rotation
    3. AES-256-GCM: per-object random IV, authenticated envelopes
"""

from verbiforge.core.crypto.cipher import (
    ENVELOPE_OVERHEAD,
    IV_LENGTH,
    TAG_LENGTH,
    CipherCodec,
)
from verbiforge.core.crypto.kdf import KEY_LENGTH, KeyRing, derive_key

__all__ = [
    "CipherCodec",
    "KeyRing",
    "derive_key",
    "IV_LENGTH",
    "TAG_LENGTH",
    "ENVELOPE_OVERHEAD",
    "KEY_LENGTH",
]
