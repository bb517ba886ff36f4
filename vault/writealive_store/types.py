"""
Shared types for WriteAlive storage.

This module defines the value types stored in and derived from a document:
- DocumentMetadata: the reserved frontmatter fragment
- SnapshotMetadata: lightweight index entry for one snapshot
- Snapshot: full capture (index entry + payload + metadata at capture time)

Wire format:
    Values are stored in YAML under camelCase keys so documents written by
    earlier WriteAlive releases keep working:

    ---
    title: My Document
    writeAlive:
      version: 1
      centers: [...]
      snapshots:
        - id: snap-1730455200000-k3j9x1
          name: Initial draft
          ...
      lastWholenessScore: 7.5
    ---

Invariants:
    - from_dict never raises on malformed input; bad fields fall back to defaults
    - to_dict output contains only YAML-safe builtins
    - snapshots are ordered newest first by construction, never re-sorted

How to change safely:
    - Add new fields with defaults, never rename wire keys
    - Bump DocumentMetadata.version only with a migration path
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

# Centers are produced by the analysis collaborator; only "id" is relied on.
Center = Dict[str, Any]

CURRENT_METADATA_VERSION = 1


class SnapshotSource(str, Enum):
    """Why a snapshot was taken."""

    MANUAL = "manual"
    AUTO = "auto"
    PRE_AI_OPERATION = "pre-ai-operation"

    @classmethod
    def parse(cls, value: Any) -> SnapshotSource:
        try:
            return cls(value)
        except ValueError:
            return cls.AUTO


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    return None


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _int_or(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value


@dataclass
class DocumentStats:
    """Document evolution counters.

    Attributes:
        analysis_count: Wholeness analyses performed
        center_find_count: Center discovery operations performed
        snapshot_count: Snapshots ever created (not decremented on delete)
        first_edited_at: First edit timestamp (ISO)
        last_edited_at: Last edit timestamp (ISO)
    """

    analysis_count: int = 0
    center_find_count: int = 0
    snapshot_count: int = 0
    first_edited_at: Optional[str] = None
    last_edited_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to wire dictionary."""
        return {
            "analysisCount": self.analysis_count,
            "centerFindCount": self.center_find_count,
            "snapshotCount": self.snapshot_count,
            "firstEditedAt": self.first_edited_at,
            "lastEditedAt": self.last_edited_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> DocumentStats:
        """Create from wire dictionary, defaulting missing fields."""
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            analysis_count=_int_or(data.get("analysisCount"), 0),
            center_find_count=_int_or(data.get("centerFindCount"), 0),
            snapshot_count=_int_or(data.get("snapshotCount"), 0),
            first_edited_at=_str_or_none(data.get("firstEditedAt")),
            last_edited_at=_str_or_none(data.get("lastEditedAt")),
        )


@dataclass
class SnapshotMetadata:
    """Index entry for one snapshot, stored in the frontmatter.

    Attributes:
        id: Unique snapshot id (snap-<unix ms>-<random>), immutable
        name: User supplied or generated name
        timestamp: Creation time (ISO)
        word_count: Body word count at capture time
        paragraph_count: Body paragraph count at capture time
        wholeness_score: Last wholeness score at capture time
        center_count: Number of centers at capture time
        source: Why the snapshot was taken
    """

    id: str
    name: str
    timestamp: str
    word_count: int = 0
    paragraph_count: int = 0
    wholeness_score: Optional[float] = None
    center_count: int = 0
    source: SnapshotSource = SnapshotSource.AUTO

    def to_dict(self) -> Dict[str, Any]:
        """Convert to wire dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "wordCount": self.word_count,
            "paragraphCount": self.paragraph_count,
            "wholenessScore": self.wholeness_score,
            "centerCount": self.center_count,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SnapshotMetadata:
        """Create from wire dictionary."""
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            timestamp=str(data.get("timestamp", "")),
            word_count=_int_or(data.get("wordCount"), 0),
            paragraph_count=_int_or(data.get("paragraphCount"), 0),
            wholeness_score=_number_or_none(data.get("wholenessScore")),
            center_count=_int_or(data.get("centerCount"), 0),
            source=SnapshotSource.parse(data.get("source")),
        )


@dataclass
class DocumentMetadata:
    """The reserved WriteAlive fragment of a document's frontmatter.

    Attributes:
        version: Metadata format version
        centers: Accepted centers, opaque beyond their "id"
        snapshots: Snapshot index, newest first
        last_wholeness_score: Most recent wholeness score (1-10)
        last_analyzed_at: Time of the most recent analysis (ISO)
        total_cost: AI spend attributed to this document (USD)
        stats: Evolution counters
    """

    version: int = CURRENT_METADATA_VERSION
    centers: List[Center] = field(default_factory=list)
    snapshots: List[SnapshotMetadata] = field(default_factory=list)
    last_wholeness_score: Optional[float] = None
    last_analyzed_at: Optional[str] = None
    total_cost: float = 0
    stats: DocumentStats = field(default_factory=DocumentStats)

    def find_snapshot(self, snapshot_id: str) -> Optional[SnapshotMetadata]:
        """Return the index entry for snapshot_id, if present."""
        for entry in self.snapshots:
            if entry.id == snapshot_id:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to wire dictionary."""
        return {
            "version": self.version,
            "centers": [dict(center) for center in self.centers],
            "snapshots": [entry.to_dict() for entry in self.snapshots],
            "lastWholenessScore": self.last_wholeness_score,
            "lastAnalyzedAt": self.last_analyzed_at,
            "totalCost": self.total_cost,
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> DocumentMetadata:
        """Create from a wire dictionary, merging with defaults.

        Lists must be lists, scores numbers and timestamps strings;
        anything else falls back to the default value.
        """
        if not isinstance(data, Mapping):
            return cls()

        centers = data.get("centers")
        snapshots = data.get("snapshots")
        total_cost = _number_or_none(data.get("totalCost"))

        return cls(
            version=_int_or(data.get("version"), CURRENT_METADATA_VERSION),
            centers=[c for c in centers if isinstance(c, Mapping)]
            if isinstance(centers, list)
            else [],
            snapshots=[SnapshotMetadata.from_dict(s) for s in snapshots if isinstance(s, Mapping)]
            if isinstance(snapshots, list)
            else [],
            last_wholeness_score=_number_or_none(data.get("lastWholenessScore")),
            last_analyzed_at=_str_or_none(data.get("lastAnalyzedAt")),
            total_cost=total_cost if total_cost is not None else 0,
            stats=DocumentStats.from_dict(data.get("stats")),
        )


@dataclass
class Snapshot:
    """A full snapshot value.

    Attributes:
        metadata: Index entry
        content: Full document text at capture time (frontmatter included)
        document_metadata: Reserved fragment at capture time
        wholeness_analysis: Opaque analysis supplied by an external provider
    """

    metadata: SnapshotMetadata
    content: str
    document_metadata: DocumentMetadata
    wholeness_analysis: Optional[Any] = None

    @property
    def id(self) -> str:
        return self.metadata.id
