"""
Unit tests for storage error types.
"""

import logging

import pytest

from vault.writealive_store.errors import (
    ParseError,
    ReadError,
    SnapshotLimitExceededError,
    SnapshotNotFoundError,
    StorageError,
    StorageErrorCode,
    WriteError,
    log_storage_errors,
)


class TestStorageErrors:
    """Tests for the StorageError hierarchy."""

    @pytest.mark.parametrize(
        "error_class,code",
        [
            (ReadError, StorageErrorCode.READ_ERROR),
            (WriteError, StorageErrorCode.WRITE_ERROR),
            (ParseError, StorageErrorCode.PARSE_ERROR),
        ],
    )
    def test_default_codes(self, error_class, code):
        error = error_class("failed", document_id="a.md")

        assert isinstance(error, StorageError)
        assert error.code == code
        assert error.document_id == "a.md"

    def test_cause_is_chained(self):
        cause = OSError("disk")
        error = WriteError("failed", cause=cause)

        assert error.cause is cause
        assert error.__cause__ is cause

    def test_str_includes_code_and_document(self):
        assert str(ReadError("Cannot read", document_id="a.md")) == (
            "[READ_ERROR] Cannot read (document: a.md)"
        )
        assert str(ReadError("Cannot read")) == "[READ_ERROR] Cannot read"

    def test_explicit_code_overrides_default(self):
        error = StorageError("x", code=StorageErrorCode.PARSE_ERROR)
        assert error.code == StorageErrorCode.PARSE_ERROR

    def test_construction_is_not_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="vault.writealive_store.errors"):
            ParseError("bad yaml", document_id="a.md")

        assert caplog.records == []

    def test_log_once(self, caplog):
        error = ParseError("bad yaml", document_id="a.md")

        with caplog.at_level(logging.ERROR, logger="vault.writealive_store.errors"):
            error.log()
            error.log()

        assert [r.getMessage() for r in caplog.records] == ["bad yaml"]
        assert error.logged is True

    @pytest.mark.asyncio
    async def test_decorator_logs_escaping_error(self, caplog):
        @log_storage_errors
        async def operation():
            raise ReadError("Cannot read", document_id="a.md")

        with caplog.at_level(logging.ERROR, logger="vault.writealive_store.errors"):
            with pytest.raises(ReadError):
                await operation()

        assert [r.getMessage() for r in caplog.records] == ["Cannot read"]

    def test_snapshot_not_found(self):
        error = SnapshotNotFoundError(
            "Snapshot not found: s1", snapshot_id="s1", document_id="a.md", payload_missing=True
        )

        assert error.code == StorageErrorCode.SNAPSHOT_NOT_FOUND
        assert error.snapshot_id == "s1"
        assert error.payload_missing is True
        assert error.details == {"snapshot_id": "s1", "payload_missing": True}

    def test_snapshot_limit_exceeded(self):
        error = SnapshotLimitExceededError("Too many", limit=10, count=11)

        assert error.code == StorageErrorCode.SNAPSHOT_LIMIT_EXCEEDED
        assert (error.limit, error.count) == (10, 11)
