"""
Integration tests for the snapshot CLI.

Tests cover:
- Each subcommand against a filesystem vault
- Exit codes for success, storage errors and bad configuration
- JSON output
"""

import json
import os
import tempfile

import pytest

from vault.writealive_store.tools import snapshot_cli


@pytest.fixture
def vault_dir():
    """Create temporary vault with one document."""
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "draft.md"), "w", encoding="utf-8") as f:
            f.write("Line 1\nLine 2")
        yield tmpdir


@pytest.fixture
def cli(vault_dir, monkeypatch):
    """Run the CLI against the temporary vault; returns (exit code, stdout, stderr)."""
    monkeypatch.setattr(snapshot_cli, "setup_logging", lambda config: None)
    for name in ("WRITEALIVE_BACKEND", "WRITEALIVE_NAMESPACE_DIR", "LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)

    def run(capsys, *args):
        code = snapshot_cli.run(["--vault-root", vault_dir, *args])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return run


def _created_id(output):
    return output.split()[2]


class TestSnapshotCLI:
    """Tests for the writealive-snapshots command."""

    def test_list_empty(self, cli, capsys):
        code, out, _ = cli(capsys, "list", "draft.md")

        assert code == 0
        assert out.strip() == "No snapshots"

    def test_create_and_list(self, cli, capsys):
        code, out, _ = cli(capsys, "create", "draft.md", "--name", "First")
        snapshot_id = _created_id(out)

        assert code == 0
        assert snapshot_id.startswith("snap-")
        assert "(First)" in out

        code, out, _ = cli(capsys, "list", "draft.md")
        assert code == 0
        assert snapshot_id in out
        assert "manual" in out
        assert "First" in out

    def test_create_with_source(self, cli, capsys):
        code, out, _ = cli(capsys, "create", "draft.md", "--source", "pre-ai-operation")
        snapshot_id = _created_id(out)

        _, out, _ = cli(capsys, "show", "draft.md", snapshot_id)
        assert json.loads(out)["source"] == "pre-ai-operation"

    def test_show_with_content(self, cli, capsys):
        _, out, _ = cli(capsys, "create", "draft.md")
        snapshot_id = _created_id(out)

        code, out, _ = cli(capsys, "show", "draft.md", snapshot_id, "--content")

        assert code == 0
        assert out.rstrip().endswith("Line 1\nLine 2")
        assert '"wordCount": 4' in out

    def test_show_unknown(self, cli, capsys):
        code, _, err = cli(capsys, "show", "draft.md", "snap-0-nothin")

        assert code == 1
        assert "Snapshot not found: snap-0-nothin" in err

    def test_delete(self, cli, capsys):
        _, out, _ = cli(capsys, "create", "draft.md")
        snapshot_id = _created_id(out)

        code, out, _ = cli(capsys, "delete", "draft.md", snapshot_id)
        assert code == 0
        assert f"Deleted snapshot {snapshot_id}" in out

        code, _, err = cli(capsys, "delete", "draft.md", snapshot_id)
        assert code == 1
        assert "SNAPSHOT_NOT_FOUND" in err

    def test_diff_against_current(self, cli, capsys, vault_dir):
        _, out, _ = cli(capsys, "create", "draft.md", "--name", "Base")
        snapshot_id = _created_id(out)

        path = os.path.join(vault_dir, "draft.md")
        with open(path, encoding="utf-8") as f:
            text = f.read()
        with open(path, "w", encoding="utf-8") as f:
            f.write(text.replace("Line 2", "Line two"))

        code, out, _ = cli(capsys, "diff", "draft.md", snapshot_id)

        assert code == 0
        assert f"{snapshot_id} -> current" in out
        assert "- Line 2" in out
        assert "+ Line two" in out

    def test_diff_two_snapshots_json(self, cli, capsys):
        _, out, _ = cli(capsys, "create", "draft.md")
        first = _created_id(out)
        _, out, _ = cli(capsys, "create", "draft.md")
        second = _created_id(out)

        code, out, _ = cli(capsys, "diff", "draft.md", first, second, "--format", "json")
        data = json.loads(out)

        assert code == 0
        assert data["fromSnapshotId"] == first
        assert data["toSnapshotId"] == second
        assert "summary" in data

    def test_restore(self, cli, capsys, vault_dir):
        _, out, _ = cli(capsys, "create", "draft.md", "--name", "Base")
        snapshot_id = _created_id(out)

        path = os.path.join(vault_dir, "draft.md")
        with open(path, encoding="utf-8") as f:
            text = f.read()
        with open(path, "w", encoding="utf-8") as f:
            f.write(text.replace("Line 2", "Rewritten"))

        code, out, _ = cli(capsys, "restore", "draft.md", snapshot_id)

        assert code == 0
        assert f"Restored snapshot {snapshot_id}" in out
        with open(path, encoding="utf-8") as f:
            restored = f.read()
        assert "Rewritten" not in restored
        assert restored.endswith("Line 1\nLine 2")

    def test_metadata_and_clear(self, cli, capsys, vault_dir):
        cli(capsys, "create", "draft.md")

        code, out, _ = cli(capsys, "metadata", "draft.md")
        assert code == 0
        assert len(json.loads(out)["snapshots"]) == 1

        code, _, _ = cli(capsys, "metadata", "draft.md", "--clear")
        assert code == 0
        with open(os.path.join(vault_dir, "draft.md"), encoding="utf-8") as f:
            assert f.read() == "Line 1\nLine 2"

    def test_missing_document(self, cli, capsys):
        code, _, err = cli(capsys, "list", "nope.md")

        assert code == 1
        assert "READ_ERROR" in err

    def test_invalid_configuration(self, cli, capsys, monkeypatch):
        monkeypatch.setenv("WRITEALIVE_NAMESPACE_DIR", "visible")

        code, _, err = cli(capsys, "list", "draft.md")

        assert code == 2
        assert "Invalid configuration" in err

    def test_unknown_command(self, cli, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli(capsys, "explode", "draft.md")

        assert exc_info.value.code == 2
