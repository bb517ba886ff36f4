"""
Base protocol and types for the document store abstraction.

The document store is owned by the surrounding note-editing tool. This
module defines what the storage core needs from it:
- DocumentStore: read/write whole documents by id
- SideStore: a raw byte namespace next to the documents, used for
  snapshot payloads

Side-store layout:
    <document dir>/.<namespace>/snapshots/<document stem>/<snapshot id>.<ext>

Invariants:
    - Document ids are POSIX-style paths relative to the store root
    - Side-store paths never escape the store root
    - write() replaces the whole document; there are no partial writes

How to change safely:
    - Protocol changes require updating all implementations
    - Keep snapshot_payload_path stable; existing payloads depend on it
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..config import WriteAliveConfig


class DocumentStoreError(Exception):
    """Base exception for document store operations."""

    pass


class DocumentNotFoundError(DocumentStoreError):
    """Document or side-store entry does not exist."""

    pass


class DocumentAccessError(DocumentStoreError):
    """Document store refused or failed an operation."""

    pass


@runtime_checkable
class SideStore(Protocol):
    """Byte store for data kept outside the documents themselves."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Whether an entry (file or directory) exists at path."""
        ...

    @abstractmethod
    async def mkdir(self, path: str) -> None:
        """Create a directory, including missing parents."""
        ...

    @abstractmethod
    async def write(self, path: str, data: bytes) -> None:
        """Write data to path, replacing existing content.

        Raises:
            DocumentAccessError: If the write fails
        """
        ...

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read the bytes stored at path.

        Raises:
            DocumentNotFoundError: If nothing is stored at path
        """
        ...

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Remove the entry at path.

        Raises:
            DocumentNotFoundError: If nothing is stored at path
        """
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for document backends.

    Example:
        >>> store = FileSystemDocumentStore("/home/me/vault")
        >>> text = await store.read("essays/draft.md")
        >>> await store.write("essays/draft.md", text + "\\nMore.")
    """

    @abstractmethod
    async def read(self, document_id: str) -> str:
        """Read a document's full text.

        Raises:
            DocumentNotFoundError: If the document does not exist
            DocumentAccessError: If the document cannot be read
        """
        ...

    @abstractmethod
    async def write(self, document_id: str, text: str) -> None:
        """Replace a document's full text.

        Raises:
            DocumentAccessError: If the document cannot be written
        """
        ...

    @abstractmethod
    async def exists(self, document_id: str) -> bool:
        """Whether the document exists."""
        ...

    @property
    @abstractmethod
    def side(self) -> SideStore:
        """The side store that lives next to the documents."""
        ...


def snapshot_folder(document_id: str, namespace_dir: str = ".writealive") -> str:
    """Side-store folder holding all payloads of one document."""
    doc_path = PurePosixPath(document_id)
    folder = PurePosixPath(namespace_dir) / "snapshots" / doc_path.stem
    parent = doc_path.parent
    if str(parent) not in ("", "."):
        folder = parent / folder
    return str(folder)


def snapshot_payload_path(
    document_id: str,
    snapshot_id: str,
    namespace_dir: str = ".writealive",
    extension: str = "md",
) -> str:
    """Side-store path of one snapshot payload.

    Example:
        >>> snapshot_payload_path("essays/draft.md", "snap-1-abc123")
        'essays/.writealive/snapshots/draft/snap-1-abc123.md'
    """
    return f"{snapshot_folder(document_id, namespace_dir)}/{snapshot_id}.{extension}"


def create_document_store(config: "WriteAliveConfig") -> DocumentStore:
    """Factory function to create a document store from configuration.

    Args:
        config: Complete configuration

    Returns:
        Appropriate DocumentStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend
    from .filesystem import FileSystemDocumentStore
    from .memory import InMemoryDocumentStore

    if config.store.backend == StoreBackend.FILESYSTEM:
        return FileSystemDocumentStore(config.store.vault_root, encoding=config.store.encoding)
    elif config.store.backend == StoreBackend.MEMORY:
        return InMemoryDocumentStore()
    else:
        raise ValueError(f"Unsupported document store backend: {config.store.backend}")
