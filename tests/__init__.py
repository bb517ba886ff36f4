"""
WriteAlive Store Test Suite.

This package contains:
- unit/: Unit tests (in-memory document store, no filesystem)
- integration/: Integration tests (filesystem vault, CLI)
"""
