"""
Frontmatter handling for WriteAlive documents.

This is the single place that knows how a document's leading YAML block is
delimited. Metadata, snapshot and diff code all go through
split_leading_block() so the three can never disagree about where the
body starts.

Block layout:
    ---\\n
    <yaml>
    \\n---\\n
    <body>

Invariants:
    - A block exists only if the text starts with "---\\n" and a later
      "\\n---\\n" occurs at or after offset 4
    - A closing marker without a trailing newline does not close the block
    - User-owned top-level keys pass through merge/clear untouched
    - Dates and timestamps stay strings through load and dump
    - Pure functions only; no I/O happens here

How to change safely:
    - Changing the delimiter rules changes word counts and diffs of every
      stored snapshot; add a new function rather than editing this one
"""

from __future__ import annotations

import re
from dataclasses import is_dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from .errors import ParseError
from .types import CURRENT_METADATA_VERSION, DocumentMetadata

OPEN_MARKER = "---\n"
CLOSE_MARKER = "\n---\n"
DEFAULT_RESERVED_KEY = "writeAlive"

_PARAGRAPH_BREAK = re.compile(r"\n\n+")

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


def _without_timestamps(resolvers):
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag != _TIMESTAMP_TAG]
        for first, entries in resolvers.items()
    }


class BlockLoader(yaml.SafeLoader):
    """Safe loader that keeps unquoted dates and timestamps as strings."""

    yaml_implicit_resolvers = _without_timestamps(yaml.SafeLoader.yaml_implicit_resolvers)


class BlockDumper(yaml.SafeDumper):
    """Safe dumper that writes timestamp-like strings unquoted."""

    yaml_implicit_resolvers = _without_timestamps(yaml.SafeDumper.yaml_implicit_resolvers)

# snake_case field names accepted in partial updates, mapped to wire keys
FIELD_ALIASES = {
    "version": "version",
    "centers": "centers",
    "snapshots": "snapshots",
    "last_wholeness_score": "lastWholenessScore",
    "last_analyzed_at": "lastAnalyzedAt",
    "total_cost": "totalCost",
    "stats": "stats",
    "analysis_count": "analysisCount",
    "center_find_count": "centerFindCount",
    "snapshot_count": "snapshotCount",
    "first_edited_at": "firstEditedAt",
    "last_edited_at": "lastEditedAt",
}

PartialMetadata = Union[Mapping[str, Any], DocumentMetadata, None]


def split_leading_block(text: str) -> Tuple[Optional[str], str]:
    """Split text into (frontmatter block, body).

    Returns (None, text) when the text has no leading block.
    """
    if not text.startswith(OPEN_MARKER):
        return None, text

    end = text.find(CLOSE_MARKER, len(OPEN_MARKER))
    if end == -1:
        return None, text

    return text[len(OPEN_MARKER) : end], text[end + len(CLOSE_MARKER) :]


def extract_body(text: str) -> str:
    """Return the text with any leading block removed."""
    return split_leading_block(text)[1]


def join_leading_block(yaml_text: str, body: str) -> str:
    """Rebuild a document from serialized YAML and a body.

    Exactly one blank line separates the closing marker from the body.
    """
    return f"{OPEN_MARKER}{yaml_text.strip()}{CLOSE_MARKER}\n{body.lstrip()}"


def count_words(body: str) -> int:
    return len(body.split())


def count_paragraphs(body: str) -> int:
    return sum(1 for part in _PARAGRAPH_BREAK.split(body) if part.strip())


def load_block(block: str, document_id: Optional[str] = None) -> Any:
    """Parse a frontmatter block.

    Unquoted ISO dates and timestamps load as the strings they were
    written as, so "2025-11-01T10:00:00.000Z" survives a read and rewrite.

    Raises:
        ParseError: If the block is not valid YAML
    """
    try:
        return yaml.load(block, Loader=BlockLoader)
    except yaml.YAMLError as e:
        raise ParseError(
            f"Invalid YAML frontmatter: {e}",
            document_id=document_id,
            cause=e,
        ) from e


def dump_block(data: Mapping[str, Any]) -> str:
    return yaml.dump(
        dict(data),
        Dumper=BlockDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def _load_mapping(block: Optional[str], document_id: Optional[str]) -> Dict[str, Any]:
    """Parse a block that must be a mapping; absent or empty yields {}."""
    if not block:
        return {}

    parsed = load_block(block, document_id)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ParseError(
            f"Frontmatter is a {type(parsed).__name__}, expected a mapping",
            document_id=document_id,
        )
    return parsed


def _to_wire(value: Any) -> Any:
    if is_dataclass(value) and hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {k: _to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    return value


def _aliased(mapping: Mapping[str, Any]) -> Dict[str, Any]:
    return {FIELD_ALIASES.get(key, key): _to_wire(value) for key, value in mapping.items()}


def normalize_partial(partial: PartialMetadata) -> Dict[str, Any]:
    """Convert a partial update into wire keys and YAML-safe values.

    Accepts snake_case or camelCase keys, and dataclass values. Centers
    and unknown keys are passed through as given.
    """
    if partial is None:
        return {}
    if isinstance(partial, DocumentMetadata):
        return partial.to_dict()

    normalized = _aliased(partial)
    if isinstance(partial.get("stats"), Mapping):
        normalized["stats"] = _aliased(partial["stats"])
    return normalized


def merge_fragment(current: Any, partial: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge a normalized partial update over the current reserved fragment.

    Top-level fields are replaced wholesale except "stats", which merges
    field by field. Unknown keys in either side are kept.
    """
    base = dict(current) if isinstance(current, Mapping) else DocumentMetadata().to_dict()
    merged = {**base, **partial}

    if isinstance(base.get("stats"), Mapping) and isinstance(partial.get("stats"), Mapping):
        merged["stats"] = {**base["stats"], **partial["stats"]}

    version = partial.get("version")
    if version is None:
        version = base.get("version")
    merged["version"] = version if version is not None else CURRENT_METADATA_VERSION

    return merged


def parse_metadata(
    text: str,
    reserved_key: str = DEFAULT_RESERVED_KEY,
    document_id: Optional[str] = None,
) -> DocumentMetadata:
    """Read the reserved fragment from document text.

    Missing block, missing key or a non-mapping fragment all yield the
    default metadata.

    Raises:
        ParseError: If the block exists but is not valid YAML
    """
    block, _ = split_leading_block(text)
    if not block:
        return DocumentMetadata()

    parsed = load_block(block, document_id)
    if not isinstance(parsed, dict):
        return DocumentMetadata()

    fragment = parsed.get(reserved_key)
    if not isinstance(fragment, dict):
        return DocumentMetadata()

    return DocumentMetadata.from_dict(fragment)


def contains_metadata(
    text: str,
    reserved_key: str = DEFAULT_RESERVED_KEY,
    document_id: Optional[str] = None,
) -> bool:
    """Whether the leading block has the reserved key.

    Raises:
        ParseError: If the block exists but is not valid YAML
    """
    block, _ = split_leading_block(text)
    if not block:
        return False

    parsed = load_block(block, document_id)
    return isinstance(parsed, dict) and reserved_key in parsed


def merge_metadata_text(
    text: str,
    partial: PartialMetadata = None,
    reserved_key: str = DEFAULT_RESERVED_KEY,
    document_id: Optional[str] = None,
) -> str:
    """Return text with partial merged into the reserved fragment.

    Raises:
        ParseError: If an existing block is not valid YAML or not a mapping
    """
    block, body = split_leading_block(text)
    parsed = _load_mapping(block, document_id)

    parsed[reserved_key] = merge_fragment(parsed.get(reserved_key), normalize_partial(partial))

    return join_leading_block(dump_block(parsed), body)


def clear_metadata_text(
    text: str,
    reserved_key: str = DEFAULT_RESERVED_KEY,
    document_id: Optional[str] = None,
) -> str:
    """Return text without the reserved fragment.

    The whole block is dropped when nothing else remains in it; the body is
    then stripped and becomes the entire document. Text without the
    reserved key is returned unchanged.

    Raises:
        ParseError: If an existing block is not valid YAML or not a mapping
    """
    block, body = split_leading_block(text)
    parsed = _load_mapping(block, document_id)

    if reserved_key not in parsed:
        return text

    del parsed[reserved_key]

    if not parsed:
        return body.strip()

    return join_leading_block(dump_block(parsed), body)

