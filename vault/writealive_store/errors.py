"""
Error types for WriteAlive storage.

This module defines all exception types raised by the storage core:
- StorageError: Base exception carrying a StorageErrorCode
- ReadError: Document could not be read
- WriteError: Document or snapshot payload could not be persisted
- ParseError: Frontmatter block exists but is not valid YAML
- SnapshotNotFoundError: Unknown snapshot id, or index entry without payload
- SnapshotLimitExceededError: Reserved for hard snapshot limits

Invariants:
    - All errors inherit from StorageError
    - Every error carries a code, the affected document id and the cause
    - "No frontmatter" and "no metadata yet" are never errors
    - An error is logged once, when it leaves a public operation
"""

from __future__ import annotations

import functools
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class StorageErrorCode(str, Enum):
    """Kinds of storage failure."""

    READ_ERROR = "READ_ERROR"
    WRITE_ERROR = "WRITE_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    SNAPSHOT_NOT_FOUND = "SNAPSHOT_NOT_FOUND"
    SNAPSHOT_LIMIT_EXCEEDED = "SNAPSHOT_LIMIT_EXCEEDED"


class StorageError(Exception):
    """Base exception for all WriteAlive storage errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        document_id: Document the operation was working on
        cause: Underlying exception, if any
        details: Additional error context
    """

    default_code = StorageErrorCode.WRITE_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[StorageErrorCode] = None,
        document_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.document_id = document_id
        self.cause = cause
        self.details = details or {}
        self.logged = False
        if cause is not None:
            self.__cause__ = cause

    def log(self) -> None:
        """Log this error at ERROR level, once per instance."""
        if self.logged:
            return
        self.logged = True
        logger.error(
            self.message,
            extra={
                "code": self.code.value,
                "document_id": self.document_id,
                "cause": str(self.cause) if self.cause is not None else None,
            },
        )

    def __str__(self) -> str:
        if self.document_id:
            return f"[{self.code.value}] {self.message} (document: {self.document_id})"
        return f"[{self.code.value}] {self.message}"


class ReadError(StorageError):
    """Document could not be read."""

    default_code = StorageErrorCode.READ_ERROR


class WriteError(StorageError):
    """Document or snapshot payload could not be written."""

    default_code = StorageErrorCode.WRITE_ERROR


class ParseError(StorageError):
    """Frontmatter block is present but is not valid YAML."""

    default_code = StorageErrorCode.PARSE_ERROR


class SnapshotNotFoundError(StorageError):
    """Snapshot id is unknown, or its payload is missing.

    Attributes:
        snapshot_id: The snapshot that was requested
    """

    default_code = StorageErrorCode.SNAPSHOT_NOT_FOUND

    def __init__(
        self,
        message: str,
        snapshot_id: str,
        document_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
        payload_missing: bool = False,
    ) -> None:
        super().__init__(
            message,
            document_id=document_id,
            cause=cause,
            details={"snapshot_id": snapshot_id, "payload_missing": payload_missing},
        )
        self.snapshot_id = snapshot_id
        self.payload_missing = payload_missing


class SnapshotLimitExceededError(StorageError):
    """Document holds more snapshots than allowed.

    Not raised by the current soft limit, which only logs an advisory.
    """

    default_code = StorageErrorCode.SNAPSHOT_LIMIT_EXCEEDED

    def __init__(
        self,
        message: str,
        limit: int,
        count: int,
        document_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            document_id=document_id,
            details={"limit": limit, "count": count},
        )
        self.limit = limit
        self.count = count


def log_storage_errors(func: F) -> F:
    """Log a StorageError escaping a public async operation, then re-raise.

    Errors that are caught and handled inside an operation are never
    logged at ERROR level.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except StorageError as e:
            e.log()
            raise

    return wrapper  # type: ignore[return-value]
