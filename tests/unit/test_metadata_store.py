"""
Unit tests for the metadata store.

Tests cover:
- Reading defaults from plain documents
- Partial updates and user key preservation
- Clearing the reserved fragment
- Error mapping (read, write, parse)
"""

import logging

import pytest
import yaml

from vault.writealive_store.docstore import DocumentAccessError, InMemoryDocumentStore
from vault.writealive_store.errors import ParseError, ReadError, StorageErrorCode, WriteError
from vault.writealive_store.frontmatter import split_leading_block
from vault.writealive_store.metadata import MetadataStore
from vault.writealive_store.types import DocumentMetadata


class TestMetadataStore:
    """Tests for MetadataStore."""

    @pytest.fixture
    def documents(self):
        """Create a document store with a few documents."""
        return InMemoryDocumentStore(
            {
                "plain.md": "Hello\nWorld",
                "user.md": "---\ntitle: My Document\ntags:\n- essay\n---\n\nBody text",
                "broken.md": "---\ntitle: [oops\n---\nBody",
            }
        )

    @pytest.fixture
    def store(self, documents):
        return MetadataStore(documents)

    @pytest.mark.asyncio
    async def test_plain_document_defaults(self, store):
        """No frontmatter reads as defaults and has no metadata."""
        assert await store.read_metadata("plain.md") == DocumentMetadata()
        assert await store.has_metadata("plain.md") is False

    @pytest.mark.asyncio
    async def test_update_creates_fragment(self, store, documents):
        """First update adds a block and the fragment."""
        await store.update_metadata("plain.md", {"last_wholeness_score": 7.5})

        metadata = await store.read_metadata("plain.md")
        assert metadata.last_wholeness_score == 7.5
        assert metadata.version == 1
        assert await store.has_metadata("plain.md") is True
        assert documents.dump("plain.md").endswith("\n---\n\nHello\nWorld")

    @pytest.mark.asyncio
    async def test_update_returns_written_text(self, store, documents):
        new_text = await store.update_metadata("plain.md", {"total_cost": 1.5})
        assert new_text == documents.dump("plain.md")

    @pytest.mark.asyncio
    async def test_update_preserves_user_keys(self, store, documents):
        """User frontmatter survives repeated updates."""
        await store.update_metadata("user.md", {"centers": [{"id": "c1"}]})
        await store.update_metadata("user.md", {"stats": {"analysis_count": 2}})

        block, body = split_leading_block(documents.dump("user.md"))
        front = yaml.safe_load(block)

        assert front["title"] == "My Document"
        assert front["tags"] == ["essay"]
        assert front["writeAlive"]["centers"] == [{"id": "c1"}]
        assert front["writeAlive"]["stats"]["analysisCount"] == 2
        assert body == "\nBody text"

    @pytest.mark.asyncio
    async def test_stats_merge(self, store):
        """Stats fields not in the partial are kept."""
        await store.update_metadata("plain.md", {"stats": {"analysis_count": 3, "snapshot_count": 1}})
        await store.update_metadata("plain.md", {"stats": {"snapshot_count": 2}})

        stats = (await store.read_metadata("plain.md")).stats
        assert stats.analysis_count == 3
        assert stats.snapshot_count == 2

    @pytest.mark.asyncio
    async def test_empty_update_is_noop_on_fragment(self, store):
        await store.update_metadata("user.md", {"last_wholeness_score": 6, "total_cost": 0.1})
        before = await store.read_metadata("user.md")

        await store.update_metadata("user.md", {})

        assert await store.read_metadata("user.md") == before

    @pytest.mark.asyncio
    async def test_update_accepts_document_metadata(self, store):
        metadata = DocumentMetadata(last_wholeness_score=9, total_cost=2.0)
        await store.update_metadata("plain.md", metadata)

        assert await store.read_metadata("plain.md") == metadata

    @pytest.mark.asyncio
    async def test_clear_keeps_user_frontmatter(self, store, documents):
        await store.update_metadata("user.md", {"total_cost": 1})

        await store.clear_metadata("user.md")

        assert await store.has_metadata("user.md") is False
        block, _ = split_leading_block(documents.dump("user.md"))
        assert yaml.safe_load(block) == {"title": "My Document", "tags": ["essay"]}

    @pytest.mark.asyncio
    async def test_clear_removes_empty_block(self, store, documents):
        await store.update_metadata("plain.md", {"total_cost": 1})

        result = await store.clear_metadata("plain.md")

        assert result == "Hello\nWorld"
        assert documents.dump("plain.md") == "Hello\nWorld"

    @pytest.mark.asyncio
    async def test_clear_without_fragment_does_not_write(self, store, documents):
        await store.clear_metadata("user.md")
        assert documents.write_count == 0

    @pytest.mark.asyncio
    async def test_malformed_frontmatter(self, store, documents):
        """Broken YAML is a parse error on read and update, False for has_metadata."""
        with pytest.raises(ParseError):
            await store.read_metadata("broken.md")

        with pytest.raises(ParseError) as exc_info:
            await store.update_metadata("broken.md", {"total_cost": 1})

        assert exc_info.value.code == StorageErrorCode.PARSE_ERROR
        assert exc_info.value.document_id == "broken.md"
        assert documents.dump("broken.md") == "---\ntitle: [oops\n---\nBody"
        assert await store.has_metadata("broken.md") is False

    @pytest.mark.asyncio
    async def test_malformed_frontmatter_logging(self, store, caplog):
        """has_metadata handles the parse error quietly; read_metadata logs it once."""
        with caplog.at_level(logging.DEBUG):
            assert await store.has_metadata("broken.md") is False

        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

        caplog.clear()
        with caplog.at_level(logging.DEBUG):
            with pytest.raises(ParseError):
                await store.read_metadata("broken.md")

        assert len([r for r in caplog.records if r.levelno >= logging.ERROR]) == 1

    @pytest.mark.asyncio
    async def test_missing_document_is_read_error(self, store):
        with pytest.raises(ReadError) as exc_info:
            await store.read_metadata("missing.md")

        assert exc_info.value.code == StorageErrorCode.READ_ERROR
        assert exc_info.value.document_id == "missing.md"

    @pytest.mark.asyncio
    async def test_has_metadata_propagates_read_error(self, store):
        with pytest.raises(ReadError):
            await store.has_metadata("missing.md")

    @pytest.mark.asyncio
    async def test_write_failure_is_write_error(self, store, documents):
        cause = DocumentAccessError("disk full")
        documents.inject_failure("write", cause)

        with pytest.raises(WriteError) as exc_info:
            await store.update_metadata("plain.md", {"total_cost": 1})

        assert exc_info.value.code == StorageErrorCode.WRITE_ERROR
        assert exc_info.value.cause is cause
        assert documents.dump("plain.md") == "Hello\nWorld"

    @pytest.mark.asyncio
    async def test_custom_reserved_key(self, documents):
        store = MetadataStore(documents, reserved_key="wa")
        await store.update_metadata("plain.md", {"total_cost": 1})

        block, _ = split_leading_block(documents.dump("plain.md"))
        assert list(yaml.safe_load(block)) == ["wa"]
        assert await MetadataStore(documents).has_metadata("plain.md") is False
