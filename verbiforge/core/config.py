"""
Store Configuration Module
==========================

Provides immutable, environment-aware configuration for the secure file store.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values (there is no fallback encryption key)
- Encryption secrets read from dedicated variables only, never via overrides
- Secrets never appear in repr()
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Mapping, Optional

from verbiforge.core.errors import ConfigurationError


# Security Constants
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "auth", "salt"
})

# Dedicated variables for the encryption secrets
SECRET_ENV_VAR: Final[str] = "FILE_ENCRYPTION_KEY"
PREVIOUS_SECRETS_ENV_VAR: Final[str] = "FILE_ENCRYPTION_PREVIOUS_KEYS"

# Platform persistent volume (Render disk mount)
RENDER_VOLUME_PATH: Final[Path] = Path("/opt/render/project/src/data")

MAX_UPLOAD_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MiB

DEFAULT_ALLOWED_MIME_TYPES: Final[frozenset[str]] = frozenset({
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
    "application/vnd.ms-excel",  # .xls
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "text/csv",
})

# Fixed application-wide KDF salt. The secret itself is high-entropy and
# rotated out-of-band, so a per-object salt is not needed.
DEFAULT_KDF_SALT: Final[bytes] = b"verbiforge.file-store.kdf.v1"


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Storage location settings."""

    storage_dir: Optional[Path] = None  # explicit base directory, highest priority
    app_dir: Path = field(default_factory=Path.cwd)
    volume_path: Path = RENDER_VOLUME_PATH
    log_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        """Validate paths after initialization."""
        if self.storage_dir is not None and not self.storage_dir.is_absolute():
            raise ConfigurationError(f"storage_dir must be an absolute path: {self.storage_dir}")
        if not self.app_dir.is_absolute():
            raise ConfigurationError(f"app_dir must be an absolute path: {self.app_dir}")


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """Key derivation settings (Argon2id)."""

    kdf_time_cost: int = 3
    kdf_memory_cost: int = 65536  # 64 MB, in KiB
    kdf_parallelism: int = 4
    kdf_salt: bytes = DEFAULT_KDF_SALT

    def __post_init__(self) -> None:
        """Validate security settings."""
        if self.kdf_time_cost < 1:
            raise ConfigurationError("kdf_time_cost must be at least 1")
        if self.kdf_parallelism < 1:
            raise ConfigurationError("kdf_parallelism must be at least 1")
        if self.kdf_memory_cost < 8 * self.kdf_parallelism:
            raise ConfigurationError("kdf_memory_cost must be at least 8 KiB per lane")
        if len(self.kdf_salt) < 16:
            raise ConfigurationError("kdf_salt must be at least 16 bytes")

    def __repr__(self) -> str:
        return (
            f"SecurityConfig(kdf_time_cost={self.kdf_time_cost}, "
            f"kdf_memory_cost={self.kdf_memory_cost}, kdf_parallelism={self.kdf_parallelism})"
        )


@dataclass(frozen=True, slots=True)
class UploadPolicy:
    """Upload size and type policy, enforced at the request boundary."""

    max_file_size: int = MAX_UPLOAD_BYTES
    allowed_mime_types: frozenset[str] = DEFAULT_ALLOWED_MIME_TYPES

    def __post_init__(self) -> None:
        if self.max_file_size <= 0:
            raise ConfigurationError("max_file_size must be positive")
        if not self.allowed_mime_types:
            raise ConfigurationError("allowed_mime_types cannot be empty")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log level: {self.level}")


class StoreConfig:
    """
    Immutable configuration consumed by the secure file store.

    Read once at process start and passed to the store explicitly; there
    is no global key or singleton.

    Usage:
        config = StoreConfig.load()
        store = SecureFileStore.from_config(config)

    Environment:
        FILE_ENCRYPTION_KEY               active encryption secret (required)
        FILE_ENCRYPTION_PREVIOUS_KEYS     comma-separated retired secrets
        VERBIFORGE_STORAGE_DIR            explicit storage base directory
        VERBIFORGE_SECTION__KEY           generic overrides, e.g.
                                          VERBIFORGE_UPLOADS__MAX_FILE_SIZE=5242880
    """

    __slots__ = (
        "_paths", "_security", "_uploads", "_logging",
        "_secret", "_previous_secrets", "_frozen", "_config_hash",
    )

    def __init__(
        self,
        secret: Optional[str] = None,
        previous_secrets: tuple[str, ...] = (),
        paths: Optional[PathConfig] = None,
        security: Optional[SecurityConfig] = None,
        uploads: Optional[UploadPolicy] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_secret", secret)
        object.__setattr__(self, "_previous_secrets", tuple(s for s in previous_secrets if s))
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_security", security or SecurityConfig())
        object.__setattr__(self, "_uploads", uploads or UploadPolicy())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Hash of the non-secret settings, useful to compare deployments."""
        config_str = f"{self._paths}|{self._security}|{self._uploads}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def secret(self) -> Optional[str]:
        return self._secret

    @property
    def previous_secrets(self) -> tuple[str, ...]:
        return self._previous_secrets

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def security(self) -> SecurityConfig:
        return self._security

    @property
    def uploads(self) -> UploadPolicy:
        return self._uploads

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        return self._config_hash

    @classmethod
    def load(
        cls,
        env: Optional[Mapping[str, str]] = None,
        env_prefix: str = "VERBIFORGE",
    ) -> StoreConfig:
        """
        Load configuration from environment variables.

        Args:
            env: Mapping to read from (default: ``os.environ``)
            env_prefix: Prefix for override variables

        Returns:
            Configured StoreConfig instance

        Raises:
            ConfigurationError: If an override has an invalid value
        """
        env = os.environ if env is None else env
        overrides = cls._parse_env_overrides(env, env_prefix)

        try:
            paths_kwargs: dict[str, Any] = {}
            storage_dir = overrides.get("storage_dir") or overrides.get("paths.storage_dir")
            if storage_dir:
                paths_kwargs["storage_dir"] = Path(storage_dir)
            if "paths.app_dir" in overrides:
                paths_kwargs["app_dir"] = Path(overrides["paths.app_dir"])
            if "paths.volume_path" in overrides:
                paths_kwargs["volume_path"] = Path(overrides["paths.volume_path"])
            if "paths.log_dir" in overrides:
                paths_kwargs["log_dir"] = Path(overrides["paths.log_dir"])

            security_kwargs: dict[str, Any] = {}
            for name in ("kdf_time_cost", "kdf_memory_cost", "kdf_parallelism"):
                if f"security.{name}" in overrides:
                    security_kwargs[name] = int(overrides[f"security.{name}"])

            upload_kwargs: dict[str, Any] = {}
            if "uploads.max_file_size" in overrides:
                upload_kwargs["max_file_size"] = int(overrides["uploads.max_file_size"])
            if "uploads.allowed_mime_types" in overrides:
                upload_kwargs["allowed_mime_types"] = frozenset(
                    item.strip()
                    for item in overrides["uploads.allowed_mime_types"].split(",")
                    if item.strip()
                )

            logging_kwargs: dict[str, Any] = {}
            if "logging.level" in overrides:
                logging_kwargs["level"] = overrides["logging.level"]
            for name in ("enable_console", "enable_file", "enable_json"):
                if f"logging.{name}" in overrides:
                    logging_kwargs[name] = _parse_bool(overrides[f"logging.{name}"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration override: {e}") from e

        previous = tuple(
            item.strip()
            for item in env.get(PREVIOUS_SECRETS_ENV_VAR, "").split(",")
            if item.strip()
        )

        return cls(
            secret=env.get(SECRET_ENV_VAR) or None,
            previous_secrets=previous,
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            security=SecurityConfig(**security_kwargs) if security_kwargs else None,
            uploads=UploadPolicy(**upload_kwargs) if upload_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(env: Mapping[str, str], prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in env.items():
            if key.startswith(prefix_upper):
                # Convert VERBIFORGE_SECTION__KEY to section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # SECURITY: secrets only come from their dedicated variables
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    def __repr__(self) -> str:
        """Safe string representation without sensitive data."""
        return (
            f"StoreConfig(hash={self._config_hash}, "
            f"secret={'set' if self._secret else 'unset'}, "
            f"previous_secrets={len(self._previous_secrets)})"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if getattr(self, "_frozen", False):
            raise AttributeError("StoreConfig is immutable after initialization")
        super().__setattr__(name, value)
