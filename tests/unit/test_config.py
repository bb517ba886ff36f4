"""
Unit tests for configuration loading.

Tests cover:
- Defaults
- Environment overrides
- Validation failures
"""

import pytest

from vault.writealive_store.config import (
    DiffPolicy,
    MetadataConfig,
    ObservabilityConfig,
    SnapshotConfig,
    StoreBackend,
    StoreConfig,
    WriteAliveConfig,
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove WriteAlive variables from the environment."""
    for name in (
        "WRITEALIVE_BACKEND",
        "WRITEALIVE_VAULT_ROOT",
        "WRITEALIVE_NAMESPACE_DIR",
        "WRITEALIVE_PAYLOAD_EXT",
        "WRITEALIVE_ENCODING",
        "WRITEALIVE_RESERVED_KEY",
        "WRITEALIVE_SNAPSHOT_WARN_AT",
        "WRITEALIVE_SNAPSHOT_ID_PREFIX",
        "WRITEALIVE_RESTORE_PRESERVE_INDEX",
        "WRITEALIVE_DIFF_POLICY",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestWriteAliveConfig:
    """Tests for WriteAliveConfig."""

    def test_defaults(self, clean_env):
        config = WriteAliveConfig.from_env()

        assert config.store.backend == StoreBackend.FILESYSTEM
        assert config.store.vault_root == "."
        assert config.store.namespace_dir == ".writealive"
        assert config.store.payload_extension == "md"
        assert config.metadata.reserved_key == "writeAlive"
        assert config.snapshot.warning_threshold == 10
        assert config.snapshot.id_prefix == "snap-"
        assert config.snapshot.preserve_index_on_restore is True
        assert config.diff.policy == DiffPolicy.POSITIONAL
        assert config.observability.log_format == "text"

    def test_env_overrides(self, clean_env):
        clean_env.setenv("WRITEALIVE_BACKEND", "memory")
        clean_env.setenv("WRITEALIVE_RESERVED_KEY", "wa")
        clean_env.setenv("WRITEALIVE_SNAPSHOT_WARN_AT", "25")
        clean_env.setenv("WRITEALIVE_RESTORE_PRESERVE_INDEX", "false")
        clean_env.setenv("WRITEALIVE_DIFF_POLICY", "sequence")
        clean_env.setenv("LOG_FORMAT", "json")

        config = WriteAliveConfig.from_env()

        assert config.store.backend == StoreBackend.MEMORY
        assert config.metadata.reserved_key == "wa"
        assert config.snapshot.warning_threshold == 25
        assert config.snapshot.preserve_index_on_restore is False
        assert config.diff.policy == DiffPolicy.SEQUENCE
        assert config.observability.log_format == "json"

    def test_invalid_backend(self, clean_env):
        clean_env.setenv("WRITEALIVE_BACKEND", "s3")
        with pytest.raises(ValueError, match="WRITEALIVE_BACKEND"):
            WriteAliveConfig.from_env()

    def test_invalid_diff_policy(self, clean_env):
        clean_env.setenv("WRITEALIVE_DIFF_POLICY", "lcs")
        with pytest.raises(ValueError, match="WRITEALIVE_DIFF_POLICY"):
            WriteAliveConfig.from_env()

    def test_empty_reserved_key(self):
        config = WriteAliveConfig(metadata=MetadataConfig(reserved_key=""))
        with pytest.raises(ValueError, match="RESERVED_KEY"):
            config.validate()

    def test_namespace_must_be_hidden(self):
        config = WriteAliveConfig(store=StoreConfig(namespace_dir="writealive"))
        with pytest.raises(ValueError, match="hidden"):
            config.validate()

    def test_namespace_single_directory(self):
        config = WriteAliveConfig(store=StoreConfig(namespace_dir=".a/b"))
        with pytest.raises(ValueError, match="single directory"):
            config.validate()

    def test_negative_threshold(self):
        config = WriteAliveConfig(snapshot=SnapshotConfig(warning_threshold=-1))
        with pytest.raises(ValueError):
            config.validate()

    def test_bad_log_format(self):
        config = WriteAliveConfig(observability=ObservabilityConfig(log_format="xml"))
        with pytest.raises(ValueError, match="LOG_FORMAT"):
            config.validate()

    def test_missing_vault_root_only_warns(self, caplog):
        config = WriteAliveConfig(store=StoreConfig(vault_root="/definitely/not/here"))

        config.validate()

        assert "Vault root does not exist" in caplog.text
