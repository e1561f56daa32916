"""
Key Derivation
==============

Turns operator-configured secrets into fixed-length symmetric keys.

Implements:
    - Argon2id stretching with a fixed application-wide salt
    - KeyRing holding the active key plus retired keys for rotation

Derivation is deterministic: the same secret and parameters always yield
the same key, so objects stay decryptable across process restarts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable, Optional

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from verbiforge.core.config import SecurityConfig
from verbiforge.core.errors import ConfigurationError

KEY_LENGTH: Final[int] = 32  # 256 bits for AES-256


def derive_key(
    secret: Optional[str],
    params: Optional[SecurityConfig] = None,
    length: int = KEY_LENGTH,
) -> bytes:
    """
    Derive a key from an operator secret using Argon2id.

    Args:
        secret: Operator-configured secret (never user-supplied)
        params: Argon2 cost parameters and salt
        length: Output key length

    Returns:
        Derived key bytes

    Raises:
        ConfigurationError: If the secret is empty or absent, or the
            parameters are rejected by Argon2
    """
    if not secret:
        raise ConfigurationError("Encryption secret is not configured")

    params = params or SecurityConfig()

    try:
        return hash_secret_raw(
            secret=secret.encode("utf-8"),
            salt=params.kdf_salt,
            time_cost=params.kdf_time_cost,
            memory_cost=params.kdf_memory_cost,
            parallelism=params.kdf_parallelism,
            hash_len=length,
            type=Type.ID,
        )
    except HashingError as e:
        raise ConfigurationError("Key derivation failed") from e


@dataclass(frozen=True)
class KeyRing:
    """
    Active key plus retired keys.

    New envelopes are always sealed with ``active``; ``retired`` keys are
    only tried when opening envelopes written before a rotation.
    """

    active: bytes
    retired: tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        for key in (self.active, *self.retired):
            if len(key) != KEY_LENGTH:
                raise ConfigurationError(f"Keys must be exactly {KEY_LENGTH} bytes")

    @classmethod
    def from_secrets(
        cls,
        secret: Optional[str],
        previous_secrets: Iterable[str] = (),
        params: Optional[SecurityConfig] = None,
    ) -> KeyRing:
        """Derive a key ring once at process start."""
        active = derive_key(secret, params)
        retired = tuple(
            key
            for key in (derive_key(s, params) for s in previous_secrets if s)
            if key != active
        )
        return cls(active=active, retired=retired)

    def candidates(self) -> tuple[bytes, ...]:
        """Keys in the order they should be tried for decryption."""
        return (self.active, *self.retired)

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        return f"KeyRing(retired={len(self.retired)})"
