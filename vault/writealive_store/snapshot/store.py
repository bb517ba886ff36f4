"""
Snapshot store for WriteAlive documents.

A snapshot is a point-in-time capture of a document. The store keeps two
independently written pieces per snapshot:
- An index entry (SnapshotMetadata) in the document's reserved
  frontmatter fragment, newest first
- The full document text as a payload file in the side store

Payload layout:
    <document dir>/.writealive/snapshots/<document stem>/<snapshot id>.md

Invariants:
    - The frontmatter index is the source of truth for existence
    - create writes the payload before the index entry, so a crash leaves
      at worst an unreferenced payload
    - delete removes the index entry before the payload; payload removal
      failures are logged, never raised
    - An index entry whose payload is missing is an inconsistent state and
      surfaces as SnapshotNotFoundError, not as None
    - Payloads are never modified after they are written
    - restore always takes a backup snapshot before overwriting

How to change safely:
    - Keep the write ordering above; recovery depends on it
    - Never re-sort the index; order is by construction
    - The soft limit must stay advisory unless callers opt in
"""

from __future__ import annotations

import logging
import random
import string
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from ..docstore import (
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    snapshot_folder,
    snapshot_payload_path,
)
from ..errors import (
    ParseError,
    ReadError,
    SnapshotNotFoundError,
    StorageError,
    WriteError,
    log_storage_errors,
)
from ..frontmatter import count_paragraphs, count_words, extract_body, merge_metadata_text
from ..metadata import MetadataStore
from ..types import Snapshot, SnapshotMetadata, SnapshotSource

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC timestamp with millisecond precision and a trailing Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def generate_snapshot_id(
    prefix: str = "snap-",
    moment: Optional[datetime] = None,
    taken: Iterable[str] = (),
) -> str:
    """Generate a snapshot id: <prefix><unix ms>-<6 base36 chars>."""
    moment = moment or datetime.now(timezone.utc)
    millis = int(moment.timestamp() * 1000)
    taken = set(taken)
    while True:
        suffix = "".join(random.choices(_ID_ALPHABET, k=6))
        snapshot_id = f"{prefix}{millis}-{suffix}"
        if snapshot_id not in taken:
            return snapshot_id


def generate_auto_name(moment: Optional[datetime] = None) -> str:
    """Default snapshot name, e.g. "Snapshot 11/01/2025, 14:05:09"."""
    moment = moment or datetime.now()
    return f"Snapshot {moment.strftime('%m/%d/%Y, %H:%M:%S')}"


class SnapshotStore:
    """Creates, lists, retrieves, deletes and restores document snapshots.

    Attributes:
        metadata_store: Store for the frontmatter index
        namespace_dir: Hidden folder for payloads
        payload_extension: Extension of payload files
        warning_threshold: Snapshot count that triggers an advisory log
        id_prefix: Prefix of generated snapshot ids
        preserve_index_on_restore: Keep the live index after a restore
        encoding: Payload text encoding

    Example:
        >>> snapshots = SnapshotStore(metadata_store)
        >>> snap = await snapshots.create_snapshot("draft.md", "Before rewrite")
        >>> await snapshots.restore_snapshot("draft.md", snap.id)
    """

    def __init__(
        self,
        metadata_store: MetadataStore,
        namespace_dir: str = ".writealive",
        payload_extension: str = "md",
        warning_threshold: int = 10,
        id_prefix: str = "snap-",
        preserve_index_on_restore: bool = True,
        encoding: str = "utf-8",
    ) -> None:
        """Initialize the snapshot store.

        Args:
            metadata_store: MetadataStore for the frontmatter index
            namespace_dir: Hidden folder holding payloads
            payload_extension: Extension of payload files
            warning_threshold: Snapshot count that triggers an advisory log
            id_prefix: Prefix of generated snapshot ids
            preserve_index_on_restore: Re-apply the live index after restore
            encoding: Payload text encoding
        """
        self.metadata_store = metadata_store
        self.namespace_dir = namespace_dir
        self.payload_extension = payload_extension
        self.warning_threshold = warning_threshold
        self.id_prefix = id_prefix
        self.preserve_index_on_restore = preserve_index_on_restore
        self.encoding = encoding

    @property
    def documents(self) -> DocumentStore:
        return self.metadata_store.documents

    def payload_path(self, document_id: str, snapshot_id: str) -> str:
        """Side-store path of a snapshot payload."""
        return snapshot_payload_path(
            document_id, snapshot_id, self.namespace_dir, self.payload_extension
        )

    @log_storage_errors
    async def create_snapshot(
        self,
        document_id: str,
        name: Optional[str] = None,
        source: Optional[SnapshotSource] = None,
        wholeness_analysis: Optional[Any] = None,
    ) -> Snapshot:
        """Capture the current state of a document.

        Args:
            document_id: Document to snapshot
            name: Optional name; generated from the clock when omitted
            source: Optional source tag; defaults to MANUAL when a name is
                given, AUTO otherwise
            wholeness_analysis: Optional analysis to attach to the result

        Returns:
            The created snapshot

        Raises:
            ReadError: If the document cannot be read
            ParseError: If the document's frontmatter is malformed
            WriteError: If the payload or the index cannot be written
        """
        try:
            content = await self.metadata_store.read_document(document_id)
            metadata = self.metadata_store.parse(content, document_id)

            if len(metadata.snapshots) >= self.warning_threshold:
                logger.warning(
                    f"Document has {len(metadata.snapshots)} snapshots. "
                    "Consider deleting old snapshots for better performance.",
                    extra={
                        "document_id": document_id,
                        "snapshot_count": len(metadata.snapshots),
                        "threshold": self.warning_threshold,
                    },
                )

            now = datetime.now(timezone.utc)
            timestamp = iso_timestamp(now)
            snapshot_id = generate_snapshot_id(
                self.id_prefix, now, (entry.id for entry in metadata.snapshots)
            )
            if source is None:
                source = SnapshotSource.MANUAL if name else SnapshotSource.AUTO

            body = extract_body(content)
            entry = SnapshotMetadata(
                id=snapshot_id,
                name=name or generate_auto_name(),
                timestamp=timestamp,
                word_count=count_words(body),
                paragraph_count=count_paragraphs(body),
                wholeness_score=metadata.last_wholeness_score,
                center_count=len(metadata.centers),
                source=SnapshotSource(source),
            )

            await self._store_payload(document_id, snapshot_id, content)

            await self.metadata_store.update_metadata(
                document_id,
                {
                    "snapshots": [entry, *metadata.snapshots],
                    "stats": {
                        "snapshot_count": metadata.stats.snapshot_count + 1,
                        "last_edited_at": timestamp,
                    },
                },
            )

        except StorageError:
            raise
        except Exception as e:
            raise WriteError(
                f"Failed to create snapshot for document: {document_id}",
                document_id=document_id,
                cause=e,
            ) from e

        logger.info(
            "Created snapshot",
            extra={
                "document_id": document_id,
                "snapshot_id": snapshot_id,
                "source": entry.source.value,
                "word_count": entry.word_count,
            },
        )

        return Snapshot(
            metadata=entry,
            content=content,
            document_metadata=metadata,
            wholeness_analysis=wholeness_analysis,
        )

    @log_storage_errors
    async def list_snapshots(self, document_id: str) -> List[SnapshotMetadata]:
        """List snapshot index entries, newest first.

        Reads only the frontmatter; no payload is touched.

        Raises:
            ReadError: If the document cannot be read
            ParseError: If the document's frontmatter is malformed
        """
        metadata = await self.metadata_store.read_metadata(document_id)
        return metadata.snapshots

    @log_storage_errors
    async def get_snapshot(self, document_id: str, snapshot_id: str) -> Optional[Snapshot]:
        """Retrieve a full snapshot.

        The returned document_metadata is the fragment embedded in the
        payload, i.e. the metadata as it was at capture time.

        Returns:
            The snapshot, or None if the index has no such entry

        Raises:
            SnapshotNotFoundError: If the index entry exists but its payload
                does not
            ReadError: If the document or payload cannot be read
        """
        try:
            metadata = await self.metadata_store.read_metadata(document_id)

            entry = metadata.find_snapshot(snapshot_id)
            if entry is None:
                return None

            content = await self._load_payload(document_id, snapshot_id)
            if content is None:
                raise SnapshotNotFoundError(
                    f"Snapshot content not found for ID: {snapshot_id}",
                    snapshot_id=snapshot_id,
                    document_id=document_id,
                    payload_missing=True,
                )

            try:
                captured = self.metadata_store.parse(content, document_id)
            except ParseError:
                logger.warning(
                    "Snapshot payload has malformed frontmatter; using live metadata",
                    extra={"document_id": document_id, "snapshot_id": snapshot_id},
                )
                captured = metadata

        except StorageError:
            raise
        except Exception as e:
            raise ReadError(
                f"Failed to get snapshot {snapshot_id} for document: {document_id}",
                document_id=document_id,
                cause=e,
            ) from e

        return Snapshot(metadata=entry, content=content, document_metadata=captured)

    @log_storage_errors
    async def delete_snapshot(self, document_id: str, snapshot_id: str) -> None:
        """Delete a snapshot.

        The index entry is removed first; the payload is then removed on a
        best-effort basis.

        Raises:
            SnapshotNotFoundError: If the index has no such entry
            ReadError: If the document cannot be read
            WriteError: If the index cannot be updated
        """
        try:
            metadata = await self.metadata_store.read_metadata(document_id)

            if metadata.find_snapshot(snapshot_id) is None:
                raise SnapshotNotFoundError(
                    f"Snapshot not found: {snapshot_id}",
                    snapshot_id=snapshot_id,
                    document_id=document_id,
                )

            await self.metadata_store.update_metadata(
                document_id,
                {"snapshots": [s for s in metadata.snapshots if s.id != snapshot_id]},
            )

        except StorageError:
            raise
        except Exception as e:
            raise WriteError(
                f"Failed to delete snapshot {snapshot_id} from document: {document_id}",
                document_id=document_id,
                cause=e,
            ) from e

        await self._delete_payload(document_id, snapshot_id)

        logger.info(
            "Deleted snapshot",
            extra={"document_id": document_id, "snapshot_id": snapshot_id},
        )

    @log_storage_errors
    async def restore_snapshot(self, document_id: str, snapshot_id: str) -> Snapshot:
        """Restore a document to a snapshot's content.

        A backup snapshot of the pre-restore state is taken first, then the
        document is overwritten. With preserve_index_on_restore the live
        snapshot index, stats and total cost are carried into the restored
        text so the backup stays reachable; the body and user frontmatter
        come from the snapshot.

        With preserve_index_on_restore on (the default) the restored
        document is therefore not byte-equal to the snapshot's stored
        content. Callers that need a byte-exact restore must turn it off,
        in which case the restored text no longer lists the backup.

        Returns:
            The backup snapshot taken before the overwrite

        Raises:
            SnapshotNotFoundError: If the snapshot does not exist (checked
                before anything is changed)
            WriteError: If the backup or the overwrite fails
        """
        target = await self.get_snapshot(document_id, snapshot_id)
        if target is None:
            raise SnapshotNotFoundError(
                f"Snapshot not found: {snapshot_id}",
                snapshot_id=snapshot_id,
                document_id=document_id,
            )

        backup = await self.create_snapshot(
            document_id, f"Backup before restore to {target.metadata.name}"
        )

        try:
            restored = target.content
            if self.preserve_index_on_restore:
                restored = await self._with_live_index(document_id, target)

            await self.metadata_store.write_document(document_id, restored)

        except StorageError:
            raise
        except Exception as e:
            raise WriteError(
                f"Failed to restore snapshot {snapshot_id} for document: {document_id}",
                document_id=document_id,
                cause=e,
            ) from e

        logger.info(
            "Restored snapshot",
            extra={
                "document_id": document_id,
                "snapshot_id": snapshot_id,
                "backup_snapshot_id": backup.id,
            },
        )
        return backup

    async def _with_live_index(self, document_id: str, target: Snapshot) -> str:
        """Target content with the live index, stats and cost merged in."""
        live = await self.metadata_store.read_metadata(document_id)
        try:
            return merge_metadata_text(
                target.content,
                {
                    "snapshots": live.snapshots,
                    "stats": live.stats,
                    "total_cost": live.total_cost,
                },
                self.metadata_store.reserved_key,
                document_id,
            )
        except ParseError:
            logger.warning(
                "Snapshot frontmatter is malformed; restoring content verbatim",
                extra={"document_id": document_id, "snapshot_id": target.id},
            )
            return target.content

    async def _store_payload(self, document_id: str, snapshot_id: str, content: str) -> None:
        """Write a payload, creating its folder if needed.

        Raises:
            WriteError: If the side store rejects the write
        """
        side = self.documents.side
        folder = snapshot_folder(document_id, self.namespace_dir)
        try:
            if not await side.exists(folder):
                await side.mkdir(folder)
            await side.write(self.payload_path(document_id, snapshot_id), content.encode(self.encoding))
        except DocumentStoreError as e:
            raise WriteError(
                f"Failed to store snapshot content for {snapshot_id}",
                document_id=document_id,
                cause=e,
            ) from e

    async def _load_payload(self, document_id: str, snapshot_id: str) -> Optional[str]:
        """Read a payload; None if it does not exist.

        Raises:
            ReadError: If the payload exists but cannot be read or decoded
        """
        try:
            data = await self.documents.side.read(self.payload_path(document_id, snapshot_id))
            return data.decode(self.encoding)
        except DocumentNotFoundError:
            return None
        except (DocumentStoreError, UnicodeDecodeError) as e:
            raise ReadError(
                f"Failed to load snapshot content for {snapshot_id}",
                document_id=document_id,
                cause=e,
            ) from e

    async def _delete_payload(self, document_id: str, snapshot_id: str) -> None:
        """Remove a payload; failures are logged and swallowed."""
        path = self.payload_path(document_id, snapshot_id)
        try:
            if await self.documents.side.exists(path):
                await self.documents.side.remove(path)
        except Exception as e:
            logger.error(
                f"Failed to delete snapshot content for {snapshot_id}: {e}",
                exc_info=True,
                extra={"document_id": document_id, "snapshot_id": snapshot_id},
            )
