"""
Metadata store for WriteAlive documents.

Reads and writes the reserved "writeAlive" fragment inside a document's
YAML frontmatter while leaving every other frontmatter key and the body
alone.

YAML structure:
    ---
    # User's own frontmatter (never touched)
    title: My Document
    tags: [essay, draft]

    # Reserved fragment (managed here)
    writeAlive:
      version: 1
      centers: [...]
      snapshots: [...]
      lastWholenessScore: 7.5
    ---

Invariants:
    - A document without frontmatter, or without the reserved key, reads
      as DocumentMetadata() and is not an error
    - update_metadata with an empty partial is a no-op on the fragment
    - Non-reserved keys survive every update and clear

How to change safely:
    - Merge rules live in frontmatter.merge_fragment; test there first
    - Keep read errors, write errors and parse errors distinct
"""

from __future__ import annotations

import logging
from typing import Optional

from ..docstore import DocumentStore, DocumentStoreError
from ..errors import ParseError, ReadError, WriteError, log_storage_errors
from ..frontmatter import (
    DEFAULT_RESERVED_KEY,
    PartialMetadata,
    clear_metadata_text,
    contains_metadata,
    merge_metadata_text,
    parse_metadata,
)
from ..types import DocumentMetadata

logger = logging.getLogger(__name__)


class MetadataStore:
    """Reads and updates WriteAlive metadata in document frontmatter.

    Attributes:
        documents: Document store holding the documents
        reserved_key: Frontmatter key owned by this store

    Example:
        >>> metadata_store = MetadataStore(InMemoryDocumentStore({"a.md": "Hi"}))
        >>> await metadata_store.update_metadata("a.md", {"last_wholeness_score": 7.5})
        >>> (await metadata_store.read_metadata("a.md")).last_wholeness_score
        7.5
    """

    def __init__(
        self,
        documents: DocumentStore,
        reserved_key: str = DEFAULT_RESERVED_KEY,
    ) -> None:
        """Initialize the metadata store.

        Args:
            documents: Document store
            reserved_key: Frontmatter key holding the fragment
        """
        self.documents = documents
        self.reserved_key = reserved_key

    async def read_document(self, document_id: str) -> str:
        """Read a document's full text.

        Raises:
            ReadError: If the document cannot be read
        """
        try:
            return await self.documents.read(document_id)
        except DocumentStoreError as e:
            raise ReadError(
                f"Failed to read document: {document_id}",
                document_id=document_id,
                cause=e,
            ) from e

    async def write_document(self, document_id: str, text: str) -> None:
        """Replace a document's full text.

        Raises:
            WriteError: If the document cannot be written
        """
        try:
            await self.documents.write(document_id, text)
        except DocumentStoreError as e:
            raise WriteError(
                f"Failed to write document: {document_id}",
                document_id=document_id,
                cause=e,
            ) from e

    def parse(self, text: str, document_id: Optional[str] = None) -> DocumentMetadata:
        """Read the reserved fragment out of already-loaded text.

        Raises:
            ParseError: If the frontmatter is present but not valid YAML
        """
        return parse_metadata(text, self.reserved_key, document_id)

    @log_storage_errors
    async def read_metadata(self, document_id: str) -> DocumentMetadata:
        """Read metadata from a document.

        Returns:
            Document metadata, or the defaults when the document has none

        Raises:
            ReadError: If the document cannot be read
            ParseError: If the frontmatter is present but not valid YAML
        """
        text = await self.read_document(document_id)
        return self.parse(text, document_id)

    @log_storage_errors
    async def update_metadata(
        self,
        document_id: str,
        partial: PartialMetadata = None,
    ) -> str:
        """Merge a partial update into the document's metadata.

        Creates the frontmatter block if the document has none. Fields in
        partial replace the stored ones, except "stats" which is merged
        field by field. Keys may be given snake_case or camelCase.

        Args:
            document_id: Document to update
            partial: Fields to change

        Returns:
            The new document text, as written

        Raises:
            ReadError: If the document cannot be read
            ParseError: If the existing frontmatter is not a valid YAML mapping
            WriteError: If the document cannot be written
        """
        text = await self.read_document(document_id)
        new_text = merge_metadata_text(text, partial, self.reserved_key, document_id)
        await self.write_document(document_id, new_text)
        return new_text

    @log_storage_errors
    async def clear_metadata(self, document_id: str) -> str:
        """Remove the reserved fragment, keeping user frontmatter.

        If the fragment was the only thing in the frontmatter, the block
        is removed and the trimmed body becomes the whole document.
        Documents without the fragment are left untouched.

        Returns:
            The resulting document text

        Raises:
            ReadError: If the document cannot be read
            ParseError: If the existing frontmatter is not a valid YAML mapping
            WriteError: If the document cannot be written
        """
        text = await self.read_document(document_id)
        new_text = clear_metadata_text(text, self.reserved_key, document_id)

        if new_text != text:
            await self.write_document(document_id, new_text)
            logger.info("Cleared document metadata", extra={"document_id": document_id})

        return new_text

    @log_storage_errors
    async def has_metadata(self, document_id: str) -> bool:
        """Check if a document carries the reserved fragment.

        A malformed frontmatter block counts as "no metadata".

        Raises:
            ReadError: If the document cannot be read
        """
        text = await self.read_document(document_id)
        try:
            return contains_metadata(text, self.reserved_key, document_id)
        except ParseError:
            logger.debug(
                "Malformed frontmatter treated as no metadata",
                extra={"document_id": document_id},
            )
            return False
