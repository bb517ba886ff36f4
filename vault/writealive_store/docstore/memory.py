"""
In-memory document store implementation for testing.

This module provides a dict-backed document store for:
- Unit tests
- Integration tests
- Local experiments without touching a real vault

Invariants:
    - All data is lost on process exit
    - Same not-found semantics as the filesystem backend
    - Safe to use from multiple coroutines

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the DocumentStore protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Set

from .base import DocumentNotFoundError

logger = logging.getLogger(__name__)


class _FailureInjector:
    """Raises queued exceptions for named operations."""

    def __init__(self) -> None:
        self._failures: Dict[str, Exception] = {}

    def arm(self, operation: str, exception: Exception) -> None:
        self._failures[operation] = exception

    def disarm(self, operation: Optional[str] = None) -> None:
        if operation is None:
            self._failures.clear()
        else:
            self._failures.pop(operation, None)

    def check(self, operation: str) -> None:
        exception = self._failures.get(operation)
        if exception is not None:
            raise exception


class InMemorySideStore:
    """In-memory byte store with implicit parent directories."""

    def __init__(self, failures: _FailureInjector) -> None:
        self._files: Dict[str, bytes] = {}
        self._dirs: Set[str] = set()
        self._failures = failures
        self._lock = asyncio.Lock()

    async def exists(self, path: str) -> bool:
        path = path.rstrip("/")
        if path in self._files or path in self._dirs:
            return True
        prefix = path + "/"
        return any(name.startswith(prefix) for name in self._files)

    async def mkdir(self, path: str) -> None:
        self._failures.check("side.mkdir")
        async with self._lock:
            self._dirs.add(path.rstrip("/"))

    async def write(self, path: str, data: bytes) -> None:
        self._failures.check("side.write")
        async with self._lock:
            self._files[path] = bytes(data)
        logger.debug("Side entry written", extra={"path": path, "size_bytes": len(data)})

    async def read(self, path: str) -> bytes:
        self._failures.check("side.read")
        try:
            return self._files[path]
        except KeyError:
            raise DocumentNotFoundError(f"No side entry at {path}") from None

    async def remove(self, path: str) -> None:
        self._failures.check("side.remove")
        async with self._lock:
            if path not in self._files:
                raise DocumentNotFoundError(f"No side entry at {path}")
            del self._files[path]

    def paths(self) -> List[str]:
        return sorted(self._files)


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore for testing.

    Attributes:
        side: Side store for snapshot payloads

    Example:
        >>> store = InMemoryDocumentStore({"draft.md": "Hello"})
        >>> await store.read("draft.md")
        'Hello'
    """

    def __init__(self, documents: Optional[Dict[str, str]] = None) -> None:
        """Initialize in-memory document store.

        Args:
            documents: Optional initial documents keyed by id
        """
        self._documents: Dict[str, str] = dict(documents or {})
        self._failures = _FailureInjector()
        self._side = InMemorySideStore(self._failures)
        self._lock = asyncio.Lock()
        self.write_count = 0

    @property
    def side(self) -> InMemorySideStore:
        return self._side

    async def read(self, document_id: str) -> str:
        self._failures.check("read")
        try:
            return self._documents[document_id]
        except KeyError:
            raise DocumentNotFoundError(f"Document not found: {document_id}") from None

    async def write(self, document_id: str, text: str) -> None:
        self._failures.check("write")
        async with self._lock:
            self._documents[document_id] = text
            self.write_count += 1

    async def exists(self, document_id: str) -> bool:
        return document_id in self._documents

    # Testing helpers

    def seed(self, document_id: str, text: str) -> None:
        """Set a document's text without counting a write (testing helper)."""
        self._documents[document_id] = text

    def dump(self, document_id: str) -> str:
        """Return a document's text synchronously (testing helper)."""
        return self._documents[document_id]

    def side_paths(self) -> List[str]:
        """All side-store file paths, sorted (testing helper)."""
        return self._side.paths()

    def inject_failure(self, operation: str, exception: Exception) -> None:
        """Make every later call of an operation raise exception.

        Operations: "read", "write", "side.mkdir", "side.write",
        "side.read", "side.remove".
        """
        self._failures.arm(operation, exception)

    def clear_failures(self, operation: Optional[str] = None) -> None:
        """Remove injected failures (testing helper)."""
        self._failures.disarm(operation)
