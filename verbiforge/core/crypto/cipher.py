"""
Envelope Cipher Codec
=====================

Encrypts and decrypts byte buffers into self-describing envelopes.

Envelope layout:
    IV (12 bytes) ‖ AES-256-GCM ciphertext ‖ tag (16 bytes)

Security Properties:
    - Fresh random IV per envelope from the OS CSPRNG
    - Authenticated: any modified byte fails decryption
    - Wrong key, truncation and tampering are reported identically

WARNING:
    - Never reuse (key, IV) pairs
    - Keys come from the KeyRing built at startup, never from globals
"""

from __future__ import annotations

import secrets
from typing import Final, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from verbiforge.core.crypto.kdf import KeyRing
from verbiforge.core.errors import DecryptionError, EncryptionError

IV_LENGTH: Final[int] = 12  # 96 bits (NIST recommended for GCM)
TAG_LENGTH: Final[int] = 16  # 128 bits
ENVELOPE_OVERHEAD: Final[int] = IV_LENGTH + TAG_LENGTH


class CipherCodec:
    """
    AES-256-GCM envelope codec bound to a key ring.

    Usage:
        codec = CipherCodec(KeyRing.from_secrets(secret))
        envelope = codec.encrypt(b"spreadsheet bytes")
        plaintext = codec.decrypt(envelope)

    Security Notes:
        - Only the IV varies per object; key material is derived once
        - Decryption errors carry no detail about the cause
    """

    __slots__ = ("_keyring", "_active")

    def __init__(self, keyring: KeyRing) -> None:
        self._keyring = keyring
        self._active = AESGCM(keyring.active)

    @property
    def keyring(self) -> KeyRing:
        return self._keyring

    @staticmethod
    def generate_iv() -> bytes:
        """Generate a cryptographically secure random IV."""
        return secrets.token_bytes(IV_LENGTH)

    @staticmethod
    def encrypted_size(plaintext_length: int) -> int:
        """Envelope length for a plaintext of the given length."""
        return plaintext_length + ENVELOPE_OVERHEAD

    def encrypt(self, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
        """
        Seal plaintext into an envelope under the active key.

        Args:
            plaintext: Data to encrypt
            aad: Additional authenticated data (must match on decrypt)

        Returns:
            IV ‖ ciphertext ‖ tag

        Raises:
            EncryptionError: If the RNG or cipher primitive fails
        """
        try:
            iv = self.generate_iv()
            return iv + self._active.encrypt(iv, bytes(plaintext), aad)
        except (OSError, ValueError, OverflowError) as e:
            raise EncryptionError("Encryption failed") from e

    def decrypt(self, envelope: bytes, aad: Optional[bytes] = None) -> bytes:
        """
        Open an envelope, trying the active key then retired keys.

        Raises:
            DecryptionError: If the envelope is too short, the key is wrong,
                the data was modified, or the primitive fails
        """
        return self._open(envelope, aad)[0]

    def needs_rotation(self, envelope: bytes, aad: Optional[bytes] = None) -> bool:
        """True if the envelope only opens under a retired key."""
        return self._open(envelope, aad)[1] > 0

    def unseal(self, envelope: bytes, aad: Optional[bytes] = None) -> tuple[bytes, bool]:
        """Decrypt and report whether a retired key was needed."""
        plaintext, index = self._open(envelope, aad)
        return plaintext, index > 0

    def _open(self, envelope: bytes, aad: Optional[bytes]) -> tuple[bytes, int]:
        if len(envelope) < ENVELOPE_OVERHEAD:
            raise DecryptionError("Decryption failed")

        iv, ciphertext = envelope[:IV_LENGTH], envelope[IV_LENGTH:]

        for index, key in enumerate(self._keyring.candidates()):
            aead = self._active if index == 0 else AESGCM(key)
            try:
                return aead.decrypt(iv, ciphertext, aad), index
            except InvalidTag:
                continue
            except (ValueError, OverflowError) as e:
                raise DecryptionError("Decryption failed") from e

        raise DecryptionError("Decryption failed")

    def __repr__(self) -> str:
        return f"CipherCodec(algorithm=AES-256-GCM, {self._keyring!r})"
