"""
Configuration management for WriteAlive storage.

All configuration is done via environment variables, with defaults that
match the layout earlier WriteAlive releases wrote to disk. This module
provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local use
    - Defaults keep documents compatible with existing vaults
      (reserved key "writeAlive", side folder ".writealive")

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Never change a default that decides where existing data lives
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class StoreBackend(Enum):
    """Supported document store backends."""

    FILESYSTEM = "filesystem"
    MEMORY = "memory"


class DiffPolicy(Enum):
    """Line alignment used by the diff engine.

    POSITIONAL compares line i with line i; an insertion near the top
    turns every later line into a modification. SEQUENCE aligns matching
    runs first. POSITIONAL is the default so existing diffs keep their
    shape.
    """

    POSITIONAL = "positional"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class StoreConfig:
    """Document store configuration.

    Attributes:
        backend: Which document store implementation to use
        vault_root: Root directory of the vault (filesystem backend)
        namespace_dir: Hidden folder holding snapshot payloads
        payload_extension: File extension of snapshot payloads
        encoding: Text encoding of documents and payloads
    """

    backend: StoreBackend = StoreBackend.FILESYSTEM
    vault_root: str = "."
    namespace_dir: str = ".writealive"
    payload_extension: str = "md"
    encoding: str = "utf-8"

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("WRITEALIVE_BACKEND", "filesystem").lower()
        try:
            backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid WRITEALIVE_BACKEND '{backend_str}'. Must be one of: filesystem, memory"
            )

        return cls(
            backend=backend,
            vault_root=os.getenv("WRITEALIVE_VAULT_ROOT", "."),
            namespace_dir=os.getenv("WRITEALIVE_NAMESPACE_DIR", ".writealive"),
            payload_extension=os.getenv("WRITEALIVE_PAYLOAD_EXT", "md"),
            encoding=os.getenv("WRITEALIVE_ENCODING", "utf-8"),
        )


@dataclass(frozen=True)
class MetadataConfig:
    """Frontmatter metadata configuration.

    Attributes:
        reserved_key: Top-level frontmatter key owned by WriteAlive
    """

    reserved_key: str = "writeAlive"

    @classmethod
    def from_env(cls) -> MetadataConfig:
        """Load configuration from environment variables."""
        return cls(reserved_key=os.getenv("WRITEALIVE_RESERVED_KEY", "writeAlive"))


@dataclass(frozen=True)
class SnapshotConfig:
    """Snapshot store configuration.

    Attributes:
        warning_threshold: Snapshot count at which creation logs an advisory
        id_prefix: Prefix of generated snapshot ids
        preserve_index_on_restore: Re-apply the live snapshot index after a
            restore overwrites the document
    """

    warning_threshold: int = 10
    id_prefix: str = "snap-"
    preserve_index_on_restore: bool = True

    @classmethod
    def from_env(cls) -> SnapshotConfig:
        """Load configuration from environment variables."""
        return cls(
            warning_threshold=int(os.getenv("WRITEALIVE_SNAPSHOT_WARN_AT", "10")),
            id_prefix=os.getenv("WRITEALIVE_SNAPSHOT_ID_PREFIX", "snap-"),
            preserve_index_on_restore=_env_bool("WRITEALIVE_RESTORE_PRESERVE_INDEX", "true"),
        )


@dataclass(frozen=True)
class DiffConfig:
    """Diff engine configuration.

    Attributes:
        policy: Line alignment policy
    """

    policy: DiffPolicy = DiffPolicy.POSITIONAL

    @classmethod
    def from_env(cls) -> DiffConfig:
        """Load configuration from environment variables."""
        policy_str = os.getenv("WRITEALIVE_DIFF_POLICY", "positional").lower()
        try:
            policy = DiffPolicy(policy_str)
        except ValueError:
            raise ValueError(
                f"Invalid WRITEALIVE_DIFF_POLICY '{policy_str}'. Must be one of: positional, sequence"
            )
        return cls(policy=policy)


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class WriteAliveConfig:
    """Complete storage configuration.

    Attributes:
        store: Document store configuration
        metadata: Frontmatter metadata configuration
        snapshot: Snapshot store configuration
        diff: Diff engine configuration
        observability: Logging configuration
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    diff: DiffConfig = field(default_factory=DiffConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> WriteAliveConfig:
        """Load complete configuration from environment variables.

        Returns:
            WriteAliveConfig with all sections populated from environment.

        Raises:
            ValueError: If configuration is missing or invalid.
        """
        config = cls(
            store=StoreConfig.from_env(),
            metadata=MetadataConfig.from_env(),
            snapshot=SnapshotConfig.from_env(),
            diff=DiffConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.metadata.reserved_key:
            raise ValueError("WRITEALIVE_RESERVED_KEY must not be empty")

        if not self.store.namespace_dir.startswith("."):
            raise ValueError(
                f"WRITEALIVE_NAMESPACE_DIR must be a hidden directory, got '{self.store.namespace_dir}'"
            )

        if "/" in self.store.namespace_dir:
            raise ValueError("WRITEALIVE_NAMESPACE_DIR must be a single directory name")

        if self.snapshot.warning_threshold < 0:
            raise ValueError("WRITEALIVE_SNAPSHOT_WARN_AT must not be negative")

        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

        if self.store.backend == StoreBackend.FILESYSTEM and not os.path.isdir(
            self.store.vault_root
        ):
            logger.warning(f"Vault root does not exist: {self.store.vault_root}")

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Storage configuration loaded",
            extra={
                "backend": self.store.backend.value,
                "vault_root": self.store.vault_root,
                "namespace_dir": self.store.namespace_dir,
                "reserved_key": self.metadata.reserved_key,
                "snapshot_warning_threshold": self.snapshot.warning_threshold,
                "preserve_index_on_restore": self.snapshot.preserve_index_on_restore,
                "diff_policy": self.diff.policy.value,
                "log_level": self.observability.log_level,
            },
        )
