"""
Store Configuration Tests
"""

from pathlib import Path

import pytest

from verbiforge.core.config import (
    MAX_UPLOAD_BYTES,
    PREVIOUS_SECRETS_ENV_VAR,
    SECRET_ENV_VAR,
    LoggingConfig,
    PathConfig,
    SecurityConfig,
    StoreConfig,
    UploadPolicy,
)
from verbiforge.core.errors import ConfigurationError


class TestLoad:

    def test_defaults_without_environment(self):
        config = StoreConfig.load({})

        assert config.secret is None
        assert config.previous_secrets == ()
        assert config.paths.storage_dir is None
        assert config.uploads.max_file_size == MAX_UPLOAD_BYTES
        assert config.logging.level == "INFO"

    def test_secrets_from_dedicated_variables(self):
        config = StoreConfig.load({
            SECRET_ENV_VAR: "current",
            PREVIOUS_SECRETS_ENV_VAR: "old-1, old-2,,",
        })

        assert config.secret == "current"
        assert config.previous_secrets == ("old-1", "old-2")

    def test_storage_dir(self, tmp_path):
        config = StoreConfig.load({"VERBIFORGE_STORAGE_DIR": str(tmp_path)})
        assert config.paths.storage_dir == tmp_path

    def test_section_overrides(self):
        config = StoreConfig.load({
            "VERBIFORGE_UPLOADS__MAX_FILE_SIZE": "5242880",
            "VERBIFORGE_UPLOADS__ALLOWED_MIME_TYPES": "text/csv, text/plain",
            "VERBIFORGE_SECURITY__KDF_TIME_COST": "2",
            "VERBIFORGE_LOGGING__LEVEL": "debug",
            "VERBIFORGE_LOGGING__ENABLE_JSON": "true",
        })

        assert config.uploads.max_file_size == 5 * 1024 * 1024
        assert config.uploads.allowed_mime_types == frozenset({"text/csv", "text/plain"})
        assert config.security.kdf_time_cost == 2
        assert config.logging.level == "debug"
        assert config.logging.enable_json is True

    def test_secrets_cannot_come_from_overrides(self):
        config = StoreConfig.load({
            "VERBIFORGE_SECRET": "sneaky",
            "VERBIFORGE_SECURITY__KDF_SALT": "attacker-chosen-salt",
        })

        assert config.secret is None
        assert config.security == SecurityConfig()

    @pytest.mark.parametrize(
        "env",
        [
            {"VERBIFORGE_UPLOADS__MAX_FILE_SIZE": "ten megabytes"},
            {"VERBIFORGE_UPLOADS__MAX_FILE_SIZE": "0"},
            {"VERBIFORGE_LOGGING__LEVEL": "LOUD"},
            {"VERBIFORGE_STORAGE_DIR": "relative/dir"},
            {"VERBIFORGE_SECURITY__KDF_PARALLELISM": "0"},
        ],
    )
    def test_invalid_override(self, env):
        with pytest.raises(ConfigurationError):
            StoreConfig.load(env)


class TestStoreConfig:

    def test_immutable(self):
        config = StoreConfig(secret="s")

        with pytest.raises(AttributeError):
            config.foo = "bar"
        with pytest.raises(AttributeError):
            config._secret = "other"

    def test_repr_hides_secret(self):
        config = StoreConfig(secret="super-secret-value", previous_secrets=("old-secret",))

        text = repr(config)

        assert "super-secret-value" not in text
        assert "old-secret" not in text
        assert "secret=set" in text
        assert "previous_secrets=1" in text

    def test_hash_ignores_secret(self):
        assert StoreConfig(secret="a").config_hash == StoreConfig(secret="b").config_hash


class TestSections:

    def test_security_validation(self):
        with pytest.raises(ConfigurationError):
            SecurityConfig(kdf_memory_cost=4, kdf_parallelism=1)
        with pytest.raises(ConfigurationError):
            SecurityConfig(kdf_salt=b"short")

    def test_security_repr_hides_salt(self):
        assert "verbiforge" not in repr(SecurityConfig())

    def test_paths_must_be_absolute(self):
        with pytest.raises(ConfigurationError):
            PathConfig(app_dir=Path("relative"))

    def test_upload_policy_validation(self):
        with pytest.raises(ConfigurationError):
            UploadPolicy(allowed_mime_types=frozenset())

    def test_logging_level(self):
        assert LoggingConfig(level="warning").level == "warning"
        with pytest.raises(ConfigurationError):
            LoggingConfig(level="VERBOSE")
