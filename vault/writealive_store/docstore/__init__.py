"""
Document store abstraction for WriteAlive.

This module provides a pluggable backend for the documents the storage
core works on:
- Filesystem (a vault directory of markdown files)
- In-memory (for testing)

Invariants:
    - Documents are read and written whole
    - Side-store entries live inside the same root as the documents

How to change safely:
    - New backends must implement the DocumentStore protocol
    - Keep snapshot_payload_path stable across releases
"""

from .base import (
    DocumentAccessError,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    SideStore,
    create_document_store,
    snapshot_folder,
    snapshot_payload_path,
)
from .filesystem import FileSystemDocumentStore
from .memory import InMemoryDocumentStore

__all__ = [
    # Protocol and types
    "DocumentStore",
    "SideStore",
    "DocumentStoreError",
    "DocumentNotFoundError",
    "DocumentAccessError",
    # Helpers
    "create_document_store",
    "snapshot_folder",
    "snapshot_payload_path",
    # Implementations
    "FileSystemDocumentStore",
    "InMemoryDocumentStore",
]
