"""
WriteAlive Store - document versioning core for a note-editing tool.

This package implements the storage layer behind WriteAlive documents:
- Reserved metadata fragment inside a document's YAML frontmatter
- Point-in-time snapshots with payloads kept in a side store
- Structured diffs between snapshots or against the live document

Architecture:
    ┌──────────────┐     ┌──────────────┐     ┌──────────────────┐
    │  DiffEngine  │────▶│SnapshotStore │────▶│  MetadataStore   │
    └──────────────┘     └──────┬───────┘     └────────┬─────────┘
                                │                      │
                                ▼                      ▼
                       ┌─────────────────────────────────────────┐
                       │     DocumentStore (filesystem/memory)   │
                       │   documents          │  side store      │
                       │   (frontmatter index)│  (.writealive/)  │
                       └─────────────────────────────────────────┘

Invariants:
    - The snapshot index inside the frontmatter is the source of truth
    - Snapshot payloads are written before the index entry, removed after it
    - User-owned frontmatter keys are never dropped, renamed or coerced
    - Frontmatter splitting happens in exactly one place (frontmatter.py)

How to change safely:
    - New metadata fields need defaults in DocumentMetadata.from_dict
    - Keep camelCase wire keys stable; existing documents depend on them
    - The positional diff output is a compatibility surface

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
