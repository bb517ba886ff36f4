"""
Filesystem document store.

Documents are plain text files under a vault root directory; side-store
entries are files in the same tree (normally under a dot-directory next to
each document). Blocking file I/O runs in the default executor so callers
on the event loop are never blocked.

Invariants:
    - Every path is resolved against the root and must stay inside it
    - Documents are read and written as whole files in one call
    - Missing files raise DocumentNotFoundError, other OS errors
      DocumentAccessError

How to change safely:
    - Keep encoding configurable; existing vaults are UTF-8
    - Do not follow paths outside the root, even through symlinks
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, TypeVar

from .base import DocumentAccessError, DocumentNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _resolve_inside(root: Path, relative: str) -> Path:
    """Resolve relative against root, rejecting paths that escape it."""
    candidate = (root / relative).resolve()
    if candidate != root and root not in candidate.parents:
        raise DocumentAccessError(f"Path escapes vault root: {relative}")
    return candidate


async def _run_blocking(func: Callable[..., T], *args) -> T:
    return await asyncio.get_event_loop().run_in_executor(None, func, *args)


class FileSystemSideStore:
    """Side store backed by files under the vault root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    async def exists(self, path: str) -> bool:
        return await _run_blocking(_resolve_inside(self.root, path).exists)

    async def mkdir(self, path: str) -> None:
        target = _resolve_inside(self.root, path)
        try:
            await _run_blocking(lambda: target.mkdir(parents=True, exist_ok=True))
        except OSError as e:
            raise DocumentAccessError(f"Failed to create directory {path}: {e}") from e

    async def write(self, path: str, data: bytes) -> None:
        target = _resolve_inside(self.root, path)
        try:
            await _run_blocking(target.write_bytes, data)
        except OSError as e:
            raise DocumentAccessError(f"Failed to write {path}: {e}") from e

    async def read(self, path: str) -> bytes:
        target = _resolve_inside(self.root, path)
        try:
            return await _run_blocking(target.read_bytes)
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"No side entry at {path}") from e
        except OSError as e:
            raise DocumentAccessError(f"Failed to read {path}: {e}") from e

    async def remove(self, path: str) -> None:
        target = _resolve_inside(self.root, path)
        try:
            await _run_blocking(target.unlink)
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"No side entry at {path}") from e
        except OSError as e:
            raise DocumentAccessError(f"Failed to remove {path}: {e}") from e


class FileSystemDocumentStore:
    """Document store over a directory of text files.

    Attributes:
        root: Vault root directory
        encoding: Text encoding of documents

    Example:
        >>> store = FileSystemDocumentStore("/home/me/vault")
        >>> text = await store.read("essays/draft.md")
    """

    def __init__(self, root: str | Path, encoding: str = "utf-8") -> None:
        """Initialize the store.

        Args:
            root: Vault root directory
            encoding: Text encoding used for documents
        """
        self.root = Path(root).resolve()
        self.encoding = encoding
        self._side = FileSystemSideStore(self.root)

    @property
    def side(self) -> FileSystemSideStore:
        return self._side

    def path_for(self, document_id: str) -> Path:
        """Absolute path of a document."""
        return _resolve_inside(self.root, document_id)

    async def read(self, document_id: str) -> str:
        path = self.path_for(document_id)

        def _read() -> str:
            with open(path, encoding=self.encoding, newline="") as f:
                return f.read()

        try:
            return await _run_blocking(_read)
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"Document not found: {document_id}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentAccessError(f"Failed to read {document_id}: {e}") from e

    async def write(self, document_id: str, text: str) -> None:
        path = self.path_for(document_id)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding=self.encoding, newline="") as f:
                f.write(text)

        try:
            await _run_blocking(_write)
        except OSError as e:
            raise DocumentAccessError(f"Failed to write {document_id}: {e}") from e

        logger.debug("Document written", extra={"document_id": document_id})

    async def exists(self, document_id: str) -> bool:
        return await _run_blocking(self.path_for(document_id).is_file)
