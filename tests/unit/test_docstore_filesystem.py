"""
Unit tests for the filesystem document store.

Tests cover:
- Whole-file read/write with exact bytes
- Not-found and access errors
- Side store operations under the vault root
- Path confinement to the vault root
"""

import os
import tempfile

import pytest

from vault.writealive_store.docstore import (
    DocumentAccessError,
    DocumentNotFoundError,
    FileSystemDocumentStore,
)


class TestFileSystemDocumentStore:
    """Tests for FileSystemDocumentStore."""

    @pytest.fixture
    def vault_dir(self):
        """Create temporary vault directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def store(self, vault_dir):
        return FileSystemDocumentStore(vault_dir)

    @pytest.mark.asyncio
    async def test_write_then_read(self, store, vault_dir):
        await store.write("essays/draft.md", "Hello\nWorld")

        assert await store.read("essays/draft.md") == "Hello\nWorld"
        assert os.path.isfile(os.path.join(vault_dir, "essays", "draft.md"))

    @pytest.mark.asyncio
    async def test_line_endings_preserved(self, store, vault_dir):
        """CRLF text is read back unchanged."""
        with open(os.path.join(vault_dir, "win.md"), "wb") as f:
            f.write(b"One\r\nTwo\r\n")

        text = await store.read("win.md")
        assert text == "One\r\nTwo\r\n"

        await store.write("win.md", text)
        with open(os.path.join(vault_dir, "win.md"), "rb") as f:
            assert f.read() == b"One\r\nTwo\r\n"

    @pytest.mark.asyncio
    async def test_unicode(self, store):
        await store.write("u.md", "Ganz schön lang · naïve 文字")
        assert await store.read("u.md") == "Ganz schön lang · naïve 文字"

    @pytest.mark.asyncio
    async def test_read_missing(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.read("missing.md")

    @pytest.mark.asyncio
    async def test_read_undecodable(self, store, vault_dir):
        with open(os.path.join(vault_dir, "bin.md"), "wb") as f:
            f.write(b"\xff\xfe\xfa")

        with pytest.raises(DocumentAccessError):
            await store.read("bin.md")

    @pytest.mark.asyncio
    async def test_exists(self, store):
        await store.write("a.md", "x")

        assert await store.exists("a.md")
        assert not await store.exists("b.md")

    def test_path_escape_rejected(self, store):
        with pytest.raises(DocumentAccessError):
            store.path_for("../outside.md")

    @pytest.mark.asyncio
    async def test_side_store(self, store, vault_dir):
        side = store.side
        folder = ".writealive/snapshots/a"

        assert not await side.exists(folder)
        await side.mkdir(folder)
        assert await side.exists(folder)

        await side.write(f"{folder}/s1.md", b"payload")
        assert await side.read(f"{folder}/s1.md") == b"payload"
        assert os.path.isfile(os.path.join(vault_dir, ".writealive", "snapshots", "a", "s1.md"))

        await side.remove(f"{folder}/s1.md")
        assert not await side.exists(f"{folder}/s1.md")

    @pytest.mark.asyncio
    async def test_side_missing_entries(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.side.read("nope.md")
        with pytest.raises(DocumentNotFoundError):
            await store.side.remove("nope.md")

    @pytest.mark.asyncio
    async def test_side_write_into_missing_folder(self, store):
        with pytest.raises(DocumentAccessError):
            await store.side.write("no/such/folder/x.md", b"x")
