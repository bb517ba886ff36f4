"""
Snapshot module for WriteAlive.

This module handles point-in-time document snapshots:
- Index entries in the document frontmatter
- Full payloads in the side store
- Restore with an automatic backup

Invariants:
    - The index is authoritative; payloads without an entry are orphans
    - Payloads are immutable once written
"""

from .store import SnapshotStore, generate_auto_name, generate_snapshot_id, iso_timestamp

__all__ = ["SnapshotStore", "generate_snapshot_id", "generate_auto_name", "iso_timestamp"]
