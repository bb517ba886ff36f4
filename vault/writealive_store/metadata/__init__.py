"""
Metadata module for WriteAlive.

Owns the reserved fragment inside document frontmatter.
"""

from .store import MetadataStore

__all__ = ["MetadataStore"]
