# tests/unit/test_main.py - v1
"""Tests for main.py: CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from commentrank.main import PREVIEW_CHARS, _build_parser, main


@pytest.fixture(autouse=True)
def _quiet_cli_logging(monkeypatch, tmp_path):
    """Keep CLI runs away from the real root logger and any local .env."""
    monkeypatch.chdir(tmp_path)
    with patch("commentrank.main._setup_logging"):
        yield


@pytest.fixture
def dirs(tmp_path: Path) -> list[str]:
    return [
        "--batch-dir", str(tmp_path / "batches"),
        "--snapshot-dir", str(tmp_path / "snapshots"),
    ]


@pytest.fixture
def payload_file(tmp_path: Path, make_payload) -> Path:
    path = tmp_path / "payload.json"
    path.write_text(json.dumps(make_payload(count=3)), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_top_subcommand(self):
        args = _build_parser().parse_args(["top", "-k", "3", "--json"])
        assert args.command == "top"
        assert args.count == 3
        assert args.as_json is True

    def test_submit_subcommand(self):
        args = _build_parser().parse_args(
            ["submit", "batch.json", "--scores-file", "reply.txt", "--no-merge"]
        )
        assert args.payload == Path("batch.json")
        assert args.scores_file == Path("reply.txt")
        assert args.no_merge is True

    def test_directory_overrides(self):
        args = _build_parser().parse_args(["--batch-dir", "/b", "merge"])
        assert args.batch_dir == Path("/b")
        assert args.snapshot_dir is None


# ---------------------------------------------------------------------------
# Command tests
# ---------------------------------------------------------------------------

class TestCommands:
    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_merge_empty(self, dirs, capsys):
        assert main([*dirs, "merge"]) == 0
        assert "No scored comments" in capsys.readouterr().out

    def test_top_without_snapshot(self, dirs, capsys):
        assert main([*dirs, "top"]) == 1
        assert "No snapshot available" in capsys.readouterr().out

    def test_top_rejects_zero(self, dirs):
        assert main([*dirs, "top", "-k", "0"]) == 1

    def test_submit_merge_and_top(self, dirs, payload_file, capsys):
        assert main([*dirs, "submit", str(payload_file)]) == 0
        out = capsys.readouterr().out
        assert "Stored batch" in out
        assert "Merge: written" in out

        assert main([*dirs, "top", "-k", "2", "--json"]) == 0
        items = json.loads(capsys.readouterr().out)
        assert [i["id"] for i in items] == [3, 2]
        assert items[0]["finalScore"] == 30.0

    def test_submit_no_merge(self, dirs, payload_file, tmp_path, capsys):
        assert main([*dirs, "submit", str(payload_file), "--no-merge"]) == 0
        assert "Merge:" not in capsys.readouterr().out
        assert not (tmp_path / "snapshots").exists()

    def test_submit_with_scores_file(self, dirs, payload_file, tmp_path, capsys):
        reply = tmp_path / "reply.txt"
        reply.write_text('```json\n{"1": {"finalScore": 99}}\n```', encoding="utf-8")

        assert main([*dirs, "submit", str(payload_file), "--scores-file", str(reply)]) == 0
        capsys.readouterr()

        assert main([*dirs, "top", "--json"]) == 0
        items = json.loads(capsys.readouterr().out)
        assert [(i["id"], i["finalScore"]) for i in items] == [(1, 99.0)]

    def test_submit_missing_file(self, dirs, tmp_path):
        assert main([*dirs, "submit", str(tmp_path / "nope.json")]) == 1

    def test_submit_invalid_payload(self, dirs, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"comments": []}), encoding="utf-8")
        assert main([*dirs, "submit", str(bad)]) == 1

    def test_merge_prints_summary_and_preview(self, dirs, tmp_path, make_payload, capsys):
        payload = make_payload(count=1)
        payload["comments"][0]["c"] = "x" * (PREVIEW_CHARS + 20)
        path = tmp_path / "long.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        main([*dirs, "submit", str(path), "--no-merge"])
        capsys.readouterr()

        assert main([*dirs, "merge"]) == 0
        out = capsys.readouterr().out
        assert "Merge complete" in out
        assert "Total comments:  1" in out
        assert "x" * PREVIEW_CHARS + "..." in out

    def test_stats_and_purge(self, dirs, payload_file, capsys):
        main([*dirs, "submit", str(payload_file)])
        capsys.readouterr()

        assert main([*dirs, "stats"]) == 0
        out = capsys.readouterr().out
        assert "Batches:         1" in out
        assert "Snapshots:       1" in out

        assert main([*dirs, "purge"]) == 0
        assert "Removed 1 batch(es) and 1 snapshot(s)" in capsys.readouterr().out

        main([*dirs, "stats"])
        assert "Batches:         0" in capsys.readouterr().out
