"""
WriteAlive storage - wiring and logging setup.

This module assembles the storage core from configuration:
- Document store (filesystem vault or in-memory)
- Metadata store (reserved frontmatter fragment)
- Snapshot store (frontmatter index + side-store payloads)
- Diff engine

Usage:
    storage = WriteAliveStorage.from_env()
    snap = await storage.snapshots.create_snapshot("essays/draft.md")

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - All components share one document store
    - The diff engine and snapshot store share one snapshot store instance

How to change safely:
    - Add new components here rather than constructing them ad hoc
"""

from __future__ import annotations

import logging
from typing import Optional

import json_log_formatter

from .config import WriteAliveConfig
from .diff import DiffEngine
from .docstore import DocumentStore, create_document_store
from .metadata import MetadataStore
from .snapshot import SnapshotStore

logger = logging.getLogger(__name__)


def setup_logging(config: WriteAliveConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Storage configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


class WriteAliveStorage:
    """WriteAlive storage core.

    Attributes:
        config: Storage configuration
        documents: Document store shared by all components
        metadata: Metadata store
        snapshots: Snapshot store
        diff: Diff engine

    Example:
        >>> storage = WriteAliveStorage(documents=InMemoryDocumentStore({"a.md": "Hi"}))
        >>> snap = await storage.snapshots.create_snapshot("a.md", "First")
        >>> diff = await storage.diff.compare_to_current_version("a.md", snap)
    """

    def __init__(
        self,
        config: Optional[WriteAliveConfig] = None,
        documents: Optional[DocumentStore] = None,
    ) -> None:
        """Initialize the storage core.

        Args:
            config: Optional configuration (defaults when not provided)
            documents: Optional document store (built from config when not provided)
        """
        self.config = config or WriteAliveConfig()
        self.documents = documents or create_document_store(self.config)

        self.metadata = MetadataStore(
            self.documents,
            reserved_key=self.config.metadata.reserved_key,
        )
        self.snapshots = SnapshotStore(
            self.metadata,
            namespace_dir=self.config.store.namespace_dir,
            payload_extension=self.config.store.payload_extension,
            warning_threshold=self.config.snapshot.warning_threshold,
            id_prefix=self.config.snapshot.id_prefix,
            preserve_index_on_restore=self.config.snapshot.preserve_index_on_restore,
            encoding=self.config.store.encoding,
        )
        self.diff = DiffEngine(self.snapshots, policy=self.config.diff.policy)

    @classmethod
    def from_env(cls) -> WriteAliveStorage:
        """Build the storage core from environment variables.

        Raises:
            ValueError: If configuration is invalid
        """
        config = WriteAliveConfig.from_env()
        config.log_config()
        return cls(config)
