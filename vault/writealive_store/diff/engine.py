"""
Diff engine for WriteAlive snapshots.

Compares two snapshots, or a snapshot and the live document, and produces:
- Text changes (line based, frontmatter excluded)
- Metadata changes (centers added/removed, wholeness score delta)
- Statistics (line counts from the text pass, word and paragraph deltas
  from the stored snapshot counts)
- A one-line human readable summary

Positional algorithm (default):
    For i in 0..max(len(a), len(b)) - 1:
        only b has line i   -> added
        only a has line i   -> removed
        both, different     -> removed(old) + added(new), one "modified"
        both, equal         -> nothing

    Lines are aligned by index, not by content, so inserting a line near
    the top turns every later line into a modification. Existing diff
    output depends on this; DiffPolicy.SEQUENCE is the opt-in alternative.

Invariants:
    - compare_snapshots is pure; it never touches storage
    - compare_snapshots(s, s) yields no text changes and zero deltas
    - Every "added" line of compare(a, b) is a "removed" line of compare(b, a)
      under the positional policy
    - The temporary capture made for compare_to_current_version is always
      deleted again
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from difflib import SequenceMatcher
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import DiffPolicy
from ..errors import ReadError, StorageError, log_storage_errors
from ..frontmatter import extract_body
from ..snapshot.store import SnapshotStore, iso_timestamp
from ..types import Center, Snapshot

logger = logging.getLogger(__name__)

CURRENT_VERSION_ID = "current"
TEMPORARY_SNAPSHOT_NAME = "[Temporary] Current Version"
NO_CHANGES = "No changes"


class ChangeKind(str, Enum):
    """Kind of a line change."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


@dataclass
class DiffChange:
    """A single line-level change.

    Attributes:
        kind: Type of change
        line_number: 0-based line index in the source text; None for added lines
        content: Line content
    """

    kind: ChangeKind
    line_number: Optional[int]
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "lineNumber": self.line_number, "content": self.content}


@dataclass
class MetadataChanges:
    """Changes in document metadata between two snapshots.

    Attributes:
        centers_added: Centers present only in the target
        centers_removed: Ids of centers present only in the source
        wholeness_score_change: target - source score, None unless both exist
        previous_wholeness_score: Source score
        current_wholeness_score: Target score
    """

    centers_added: List[Center] = field(default_factory=list)
    centers_removed: List[str] = field(default_factory=list)
    wholeness_score_change: Optional[float] = None
    previous_wholeness_score: Optional[float] = None
    current_wholeness_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "centersAdded": [dict(c) for c in self.centers_added],
            "centersRemoved": list(self.centers_removed),
            "wholenessScoreChange": self.wholeness_score_change,
            "previousWholenessScore": self.previous_wholeness_score,
            "currentWholenessScore": self.current_wholeness_score,
        }


@dataclass
class DiffStats:
    """Quantitative changes between two snapshots."""

    lines_added: int = 0
    lines_removed: int = 0
    lines_modified: int = 0
    word_count_change: int = 0
    paragraph_count_change: int = 0
    previous_word_count: int = 0
    current_word_count: int = 0
    previous_paragraph_count: int = 0
    current_paragraph_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "linesAdded": self.lines_added,
            "linesRemoved": self.lines_removed,
            "linesModified": self.lines_modified,
            "wordCountChange": self.word_count_change,
            "paragraphCountChange": self.paragraph_count_change,
            "previousWordCount": self.previous_word_count,
            "currentWordCount": self.current_word_count,
            "previousParagraphCount": self.previous_paragraph_count,
            "currentParagraphCount": self.current_paragraph_count,
        }


@dataclass
class Diff:
    """Comparison between two snapshots, or a snapshot and the live document.

    Attributes:
        from_id: Source snapshot id
        to_id: Target snapshot id, or CURRENT_VERSION_ID for the live document
        text_changes: Line changes in order
        metadata_changes: Center and score changes
        stats: Line, word and paragraph deltas
        timestamp: When the diff was computed (ISO)
    """

    from_id: str
    to_id: str
    text_changes: List[DiffChange]
    metadata_changes: MetadataChanges
    stats: DiffStats
    timestamp: str

    @property
    def is_against_current(self) -> bool:
        return self.to_id == CURRENT_VERSION_ID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromSnapshotId": self.from_id,
            "toSnapshotId": self.to_id,
            "textChanges": [change.to_dict() for change in self.text_changes],
            "metadataChanges": self.metadata_changes.to_dict(),
            "stats": self.stats.to_dict(),
            "timestamp": self.timestamp,
        }


@dataclass
class _LineCounts:
    added: int = 0
    removed: int = 0
    modified: int = 0


def _emit_aligned(
    old: Sequence[str],
    new: Sequence[str],
    old_start: int,
    changes: List[DiffChange],
    counts: _LineCounts,
) -> None:
    """Compare two runs of lines index by index."""
    for offset in range(max(len(old), len(new))):
        has_old = offset < len(old)
        has_new = offset < len(new)

        if has_new and not has_old:
            changes.append(DiffChange(ChangeKind.ADDED, None, new[offset]))
            counts.added += 1
        elif has_old and not has_new:
            changes.append(DiffChange(ChangeKind.REMOVED, old_start + offset, old[offset]))
            counts.removed += 1
        elif old[offset] != new[offset]:
            changes.append(DiffChange(ChangeKind.REMOVED, old_start + offset, old[offset]))
            changes.append(DiffChange(ChangeKind.ADDED, None, new[offset]))
            counts.modified += 1


def positional_line_diff(
    old_text: str, new_text: str
) -> Tuple[List[DiffChange], _LineCounts]:
    """Index-aligned line diff."""
    changes: List[DiffChange] = []
    counts = _LineCounts()
    _emit_aligned(old_text.split("\n"), new_text.split("\n"), 0, changes, counts)
    return changes, counts


def sequence_line_diff(
    old_text: str, new_text: str
) -> Tuple[List[DiffChange], _LineCounts]:
    """Content-aligned line diff; replaced runs are compared index by index."""
    old_lines = old_text.split("\n")
    new_lines = new_text.split("\n")
    changes: List[DiffChange] = []
    counts = _LineCounts()

    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        _emit_aligned(old_lines[i1:i2], new_lines[j1:j2], i1, changes, counts)

    return changes, counts


def _center_id(center: Any) -> Any:
    if isinstance(center, dict):
        return center.get("id")
    return getattr(center, "id", None)


class DiffEngine:
    """Compares snapshots and summarizes the result.

    Attributes:
        snapshot_store: Used only by compare_to_current_version
        policy: Line alignment policy

    Example:
        >>> engine = DiffEngine(snapshot_store)
        >>> diff = engine.compare_snapshots(older, newer)
        >>> engine.generate_diff_summary(diff)
        'Text: +1 lines | Words: +2'
    """

    def __init__(
        self,
        snapshot_store: Optional[SnapshotStore] = None,
        policy: DiffPolicy = DiffPolicy.POSITIONAL,
    ) -> None:
        """Initialize the diff engine.

        Args:
            snapshot_store: Snapshot store for comparisons with the live document
            policy: Line alignment policy
        """
        self.snapshot_store = snapshot_store
        self.policy = policy

    def compare_snapshots(self, from_snapshot: Snapshot, to_snapshot: Snapshot) -> Diff:
        """Compare two snapshots.

        Frontmatter is stripped from both contents before the line pass.
        Word and paragraph deltas come from the stored snapshot counts.
        """
        from_body = extract_body(from_snapshot.content)
        to_body = extract_body(to_snapshot.content)

        if self.policy == DiffPolicy.SEQUENCE:
            text_changes, counts = sequence_line_diff(from_body, to_body)
        else:
            text_changes, counts = positional_line_diff(from_body, to_body)

        previous_words = from_snapshot.metadata.word_count
        current_words = to_snapshot.metadata.word_count
        previous_paragraphs = from_snapshot.metadata.paragraph_count
        current_paragraphs = to_snapshot.metadata.paragraph_count

        stats = DiffStats(
            lines_added=counts.added,
            lines_removed=counts.removed,
            lines_modified=counts.modified,
            word_count_change=current_words - previous_words,
            paragraph_count_change=current_paragraphs - previous_paragraphs,
            previous_word_count=previous_words,
            current_word_count=current_words,
            previous_paragraph_count=previous_paragraphs,
            current_paragraph_count=current_paragraphs,
        )

        return Diff(
            from_id=from_snapshot.metadata.id,
            to_id=to_snapshot.metadata.id,
            text_changes=text_changes,
            metadata_changes=self._compare_metadata(from_snapshot, to_snapshot),
            stats=stats,
            timestamp=iso_timestamp(),
        )

    @log_storage_errors
    async def compare_to_current_version(self, document_id: str, snapshot: Snapshot) -> Diff:
        """Compare a snapshot with the live document.

        A temporary snapshot of the live document is created, compared
        against and deleted again. The result's to_id is CURRENT_VERSION_ID.

        Raises:
            ReadError: If the live document cannot be captured
            ValueError: If the engine has no snapshot store
        """
        if self.snapshot_store is None:
            raise ValueError("compare_to_current_version requires a snapshot store")

        try:
            current = await self.snapshot_store.create_snapshot(
                document_id, TEMPORARY_SNAPSHOT_NAME
            )
            try:
                diff = self.compare_snapshots(snapshot, current)
            except Exception:
                await self._discard_capture(document_id, current.id)
                raise
            await self.snapshot_store.delete_snapshot(document_id, current.id)
            logger.debug(
                "Removed temporary capture",
                extra={"document_id": document_id, "snapshot_id": current.id},
            )
        except StorageError:
            raise
        except Exception as e:
            raise ReadError(
                f"Failed to compare snapshot to current version: {document_id}",
                document_id=document_id,
                cause=e,
            ) from e

        return replace(diff, to_id=CURRENT_VERSION_ID)

    async def _discard_capture(self, document_id: str, snapshot_id: str) -> None:
        """Remove a temporary capture while another error propagates."""
        try:
            await self.snapshot_store.delete_snapshot(document_id, snapshot_id)
        except Exception as e:
            logger.error(
                f"Failed to remove temporary capture {snapshot_id}: {e}",
                exc_info=True,
                extra={"document_id": document_id, "snapshot_id": snapshot_id},
            )

    def generate_diff_summary(self, diff: Diff) -> str:
        """Summarize a diff in one line.

        Only non-zero parts are included, in this order: text lines, words,
        paragraphs, wholeness, centers. Returns "No changes" when every part
        is zero or absent.
        """
        parts: List[str] = []
        stats = diff.stats
        changes = diff.metadata_changes

        if stats.lines_added + stats.lines_removed + stats.lines_modified > 0:
            text_parts = []
            if stats.lines_added > 0:
                text_parts.append(f"+{stats.lines_added} lines")
            if stats.lines_removed > 0:
                text_parts.append(f"-{stats.lines_removed} lines")
            if stats.lines_modified > 0:
                text_parts.append(f"~{stats.lines_modified} modified")
            parts.append(f"Text: {', '.join(text_parts)}")

        if stats.word_count_change != 0:
            parts.append(f"Words: {stats.word_count_change:+d}")

        if stats.paragraph_count_change != 0:
            parts.append(f"Paragraphs: {stats.paragraph_count_change:+d}")

        if changes.wholeness_score_change:
            parts.append(f"Wholeness: {changes.wholeness_score_change:+.1f}")

        if changes.centers_added or changes.centers_removed:
            parts.append(f"Centers: +{len(changes.centers_added)}/-{len(changes.centers_removed)}")

        return " | ".join(parts) if parts else NO_CHANGES

    def _compare_metadata(self, from_snapshot: Snapshot, to_snapshot: Snapshot) -> MetadataChanges:
        from_centers = from_snapshot.document_metadata.centers
        to_centers = to_snapshot.document_metadata.centers

        from_ids = {_center_id(c) for c in from_centers}
        to_ids = {_center_id(c) for c in to_centers}

        from_score = from_snapshot.document_metadata.last_wholeness_score
        to_score = to_snapshot.document_metadata.last_wholeness_score

        return MetadataChanges(
            centers_added=[c for c in to_centers if _center_id(c) not in from_ids],
            centers_removed=[_center_id(c) for c in from_centers if _center_id(c) not in to_ids],
            wholeness_score_change=to_score - from_score
            if from_score is not None and to_score is not None
            else None,
            previous_wholeness_score=from_score,
            current_wholeness_score=to_score,
        )
