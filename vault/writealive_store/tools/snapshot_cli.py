"""
Snapshot CLI tool for WriteAlive vaults.

This tool works directly on a vault directory:
- list: Show a document's snapshot index
- create: Take a snapshot
- show: Print one snapshot's index entry (and optionally its content)
- delete: Delete a snapshot
- restore: Restore a document to a snapshot (a backup is taken first)
- diff: Compare two snapshots, or a snapshot with the live document
- metadata: Print or clear a document's WriteAlive metadata

Usage:
    writealive-snapshots --vault-root ~/notes list essays/draft.md
    writealive-snapshots create essays/draft.md --name "Before rewrite"
    writealive-snapshots diff essays/draft.md snap-1730455200000-k3j9x1
    writealive-snapshots diff essays/draft.md <from-id> <to-id> --format json

Exit codes:
    0  success
    1  storage error or unknown snapshot
    2  invalid configuration or arguments

Invariants:
    - Tools work offline against the vault on disk
    - Errors go to stderr, results to stdout
    - JSON output uses the same camelCase keys as the frontmatter
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import List, Optional

from ..config import StoreBackend, WriteAliveConfig
from ..diff import ChangeKind, Diff
from ..errors import StorageError
from ..main import WriteAliveStorage, setup_logging
from ..types import Snapshot, SnapshotSource

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


class SnapshotCLI:
    """Snapshot commands over a WriteAlive storage core.

    Each command returns the text to print on stdout.

    Example:
        >>> cli = SnapshotCLI(WriteAliveStorage(config))
        >>> print(await cli.list("essays/draft.md"))
    """

    def __init__(self, storage: WriteAliveStorage) -> None:
        self.storage = storage

    async def list(self, document_id: str) -> str:
        entries = await self.storage.snapshots.list_snapshots(document_id)
        if not entries:
            return "No snapshots"

        lines = []
        for entry in entries:
            lines.append(
                f"{entry.id}  {entry.timestamp}  {entry.source.value:<16}  "
                f"{entry.word_count:>6} words  {entry.name}"
            )
        return "\n".join(lines)

    async def create(
        self,
        document_id: str,
        name: Optional[str] = None,
        source: Optional[str] = None,
    ) -> str:
        snapshot = await self.storage.snapshots.create_snapshot(
            document_id,
            name,
            SnapshotSource(source) if source else None,
        )
        return f"Created snapshot {snapshot.id} ({snapshot.metadata.name})"

    async def show(self, document_id: str, snapshot_id: str, with_content: bool = False) -> str:
        snapshot = await self._require(document_id, snapshot_id)
        output = json.dumps(snapshot.metadata.to_dict(), indent=2)
        if with_content:
            output = f"{output}\n\n{snapshot.content}"
        return output

    async def delete(self, document_id: str, snapshot_id: str) -> str:
        await self.storage.snapshots.delete_snapshot(document_id, snapshot_id)
        return f"Deleted snapshot {snapshot_id}"

    async def restore(self, document_id: str, snapshot_id: str) -> str:
        backup = await self.storage.snapshots.restore_snapshot(document_id, snapshot_id)
        return f"Restored snapshot {snapshot_id} (backup: {backup.id})"

    async def diff(
        self,
        document_id: str,
        from_id: str,
        to_id: Optional[str] = None,
        output_format: str = "text",
    ) -> str:
        """Compare from_id with to_id, or with the live document when to_id is None."""
        from_snapshot = await self._require(document_id, from_id)
        engine = self.storage.diff

        if to_id is None:
            result = await engine.compare_to_current_version(document_id, from_snapshot)
        else:
            to_snapshot = await self._require(document_id, to_id)
            result = engine.compare_snapshots(from_snapshot, to_snapshot)

        if output_format == "json":
            output = result.to_dict()
            output["summary"] = engine.generate_diff_summary(result)
            return json.dumps(output, indent=2)
        return self._render(result)

    async def metadata(self, document_id: str, clear: bool = False) -> str:
        if clear:
            await self.storage.metadata.clear_metadata(document_id)
            return f"Cleared WriteAlive metadata from {document_id}"

        metadata = await self.storage.metadata.read_metadata(document_id)
        return json.dumps(metadata.to_dict(), indent=2)

    async def _require(self, document_id: str, snapshot_id: str) -> Snapshot:
        snapshot = await self.storage.snapshots.get_snapshot(document_id, snapshot_id)
        if snapshot is None:
            raise LookupError(f"Snapshot not found: {snapshot_id}")
        return snapshot

    def _render(self, diff: Diff) -> str:
        lines = [
            f"{diff.from_id} -> {diff.to_id}",
            self.storage.diff.generate_diff_summary(diff),
        ]
        for change in diff.text_changes:
            marker = "+" if change.kind == ChangeKind.ADDED else "-"
            lines.append(f"{marker} {change.content}")
        return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="WriteAlive snapshot management tool")
    parser.add_argument("--vault-root", help="Vault directory (default: WRITEALIVE_VAULT_ROOT)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # list command
    list_parser = subparsers.add_parser("list", help="List a document's snapshots")
    list_parser.add_argument("document", help="Document path relative to the vault")

    # create command
    create_parser = subparsers.add_parser("create", help="Take a snapshot")
    create_parser.add_argument("document", help="Document path relative to the vault")
    create_parser.add_argument("--name", "-n", help="Snapshot name")
    create_parser.add_argument(
        "--source",
        choices=[source.value for source in SnapshotSource],
        help="Why the snapshot is taken",
    )

    # show command
    show_parser = subparsers.add_parser("show", help="Show one snapshot")
    show_parser.add_argument("document", help="Document path relative to the vault")
    show_parser.add_argument("snapshot", help="Snapshot id")
    show_parser.add_argument("--content", action="store_true", help="Print the captured text")

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a snapshot")
    delete_parser.add_argument("document", help="Document path relative to the vault")
    delete_parser.add_argument("snapshot", help="Snapshot id")

    # restore command
    restore_parser = subparsers.add_parser("restore", help="Restore a document to a snapshot")
    restore_parser.add_argument("document", help="Document path relative to the vault")
    restore_parser.add_argument("snapshot", help="Snapshot id")

    # diff command
    diff_parser = subparsers.add_parser("diff", help="Compare snapshots")
    diff_parser.add_argument("document", help="Document path relative to the vault")
    diff_parser.add_argument("from_snapshot", help="Snapshot id to compare from")
    diff_parser.add_argument(
        "to_snapshot", nargs="?", help="Snapshot id to compare to (default: live document)"
    )
    diff_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    # metadata command
    metadata_parser = subparsers.add_parser("metadata", help="Print document metadata")
    metadata_parser.add_argument("document", help="Document path relative to the vault")
    metadata_parser.add_argument(
        "--clear", action="store_true", help="Remove WriteAlive metadata from the document"
    )

    return parser


async def _dispatch(cli: SnapshotCLI, args: argparse.Namespace) -> str:
    if args.command == "list":
        return await cli.list(args.document)
    elif args.command == "create":
        return await cli.create(args.document, args.name, args.source)
    elif args.command == "show":
        return await cli.show(args.document, args.snapshot, args.content)
    elif args.command == "delete":
        return await cli.delete(args.document, args.snapshot)
    elif args.command == "restore":
        return await cli.restore(args.document, args.snapshot)
    elif args.command == "diff":
        return await cli.diff(args.document, args.from_snapshot, args.to_snapshot, args.format)
    elif args.command == "metadata":
        return await cli.metadata(args.document, args.clear)
    raise ValueError(f"Unknown command: {args.command}")


def run(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = WriteAliveConfig.from_env()
        if args.vault_root:
            config.store = replace(
                config.store, backend=StoreBackend.FILESYSTEM, vault_root=args.vault_root
            )
        if args.verbose:
            config.observability = replace(config.observability, log_level="DEBUG")
        config.validate()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(config)

    cli = SnapshotCLI(WriteAliveStorage(config))
    try:
        output = asyncio.run(_dispatch(cli, args))
    except LookupError as e:
        print(str(e), file=sys.stderr)
        return EXIT_ERROR
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(output)
    return EXIT_OK


def main() -> None:
    """CLI entry point for snapshot tool."""
    sys.exit(run())


if __name__ == "__main__":
    main()
