"""
Diff module for WriteAlive.

Compares snapshots and summarizes what changed.
"""

from .engine import (
    CURRENT_VERSION_ID,
    ChangeKind,
    Diff,
    DiffChange,
    DiffEngine,
    DiffStats,
    MetadataChanges,
    positional_line_diff,
    sequence_line_diff,
)

__all__ = [
    "CURRENT_VERSION_ID",
    "ChangeKind",
    "Diff",
    "DiffChange",
    "DiffEngine",
    "DiffStats",
    "MetadataChanges",
    "positional_line_diff",
    "sequence_line_diff",
]
