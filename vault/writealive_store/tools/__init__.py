"""
CLI tools for WriteAlive vaults.

This module provides command-line tools for:
- snapshots: List, create, inspect, restore and diff document snapshots

Invariants:
    - Tools work offline against the vault on disk
    - All operations are logged
"""

from .snapshot_cli import SnapshotCLI

__all__ = ["SnapshotCLI"]
