"""Tests for the sort CLI command."""

import json
import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from dirsort_tools.cli.sort import sort
from dirsort_tools.shared.fixtures import (
    generate_fixture_tree,
    protect,
    snapshot_tree,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Keep DIRSORT_* settings from the outer environment out of the tests."""
    for var in ["SORT_KEY", "SIMULATE", "PRESERVE_PROTECTED", "EXCLUDE", "VERBOSE"]:
        monkeypatch.delenv(f"DIRSORT_{var}", raising=False)
    monkeypatch.chdir(tmp_path)


posix_only = pytest.mark.skipif(os.name == "nt", reason="POSIX permission semantics")


def _folder_report(data, folder):
    return next(r for r in data["reports"] if Path(r["folder"]) == folder.resolve())


@pytest.fixture
def card(tmp_path, populate):
    root = tmp_path / "card"
    root.mkdir()
    populate(root, files=["b.mp3", "a.mp3"], folders=["Zeta", "Alpha"])
    populate(root / "Alpha", files=["2.mp3", "1.mp3"])
    return root


class TestSortCommand:
    """Test the sort command end to end."""

    def test_sorts_tree(self, card, tmp_path):
        """Test a real run succeeds and reports the new order."""
        report = tmp_path / "run.json"
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--report", str(report)])

        assert result.exit_code == 0, result.output
        assert "Re-sequencing complete" in result.output
        data = json.loads(report.read_text())
        assert data["dry_run"] is False
        root_report = _folder_report(data, card)
        assert root_report["order"] == ["Alpha", "Zeta", "a.mp3", "b.mp3"]
        assert (card / "Alpha" / "1.mp3").read_text() == "content of 1.mp3\n"

    def test_dry_run(self, card):
        """Test --dry-run leaves the tree untouched."""
        before = snapshot_tree(card)
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "DRY RUN" in result.output
        assert snapshot_tree(card) == before

    def test_sort_key_case_insensitive(self, card, tmp_path):
        """Test the sort key is accepted in any case."""
        report = tmp_path / "run.json"
        runner = CliRunner()

        result = runner.invoke(
            sort, [str(card), "-k", "length", "--dry-run", "--report", str(report)]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(report.read_text())["sort_key"] == "Length"

    def test_invalid_sort_key(self, card):
        """Test an unknown sort key is a usage error."""
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--sort-key", "Color"])

        assert result.exit_code == 2

    def test_missing_root(self, tmp_path):
        """Test a missing root exits with code 2."""
        runner = CliRunner()

        result = runner.invoke(sort, [str(tmp_path / "nope")])

        assert result.exit_code == 2

    def test_exclude(self, card, tmp_path):
        """Test excluded folders are not visited."""
        report = tmp_path / "run.json"
        runner = CliRunner()

        result = runner.invoke(
            sort, [str(card), "-x", "Alpha", "--report", str(report)]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(report.read_text())
        assert data["total_folders"] == 2
        assert "Alpha" not in _folder_report(data, card)["order"]

    def test_skip_protected(self, card, tmp_path):
        """Test --skip-protected leaves protected entries in place."""
        protect(card / "a.mp3", read_only=True, hidden=False)
        report = tmp_path / "run.json"
        runner = CliRunner()

        result = runner.invoke(
            sort, [str(card), "--skip-protected", "--report", str(report)]
        )

        assert result.exit_code == 0, result.output
        root_report = _folder_report(json.loads(report.read_text()), card)
        assert root_report["skipped"] == ["a.mp3"]
        assert "a.mp3" not in root_report["order"]

    @posix_only
    def test_skip_protected_read_only_folder(self, card, tmp_path):
        """Test a read-only folder is reported as skipped and the run succeeds."""
        protect(card / "Alpha", read_only=True, hidden=False)
        report = tmp_path / "run.json"
        runner = CliRunner()

        result = runner.invoke(
            sort, [str(card), "--skip-protected", "--report", str(report)]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(report.read_text())
        alpha = _folder_report(data, card / "Alpha")
        assert alpha["status"] == "skipped"
        assert sorted(alpha["skipped"]) == ["1.mp3", "2.mp3"]
        assert sorted(p.name for p in (card / "Alpha").iterdir()) == [
            "1.mp3",
            "2.mp3",
        ]

    def test_preserve_protected_overrides_environment(
        self, card, tmp_path, monkeypatch
    ):
        """Test --preserve-protected wins over DIRSORT_PRESERVE_PROTECTED=false."""
        monkeypatch.setenv("DIRSORT_PRESERVE_PROTECTED", "false")
        protect(card / "a.mp3", read_only=True, hidden=False)
        report = tmp_path / "run.json"
        runner = CliRunner()

        result = runner.invoke(
            sort, [str(card), "--preserve-protected", "--report", str(report)]
        )

        assert result.exit_code == 0, result.output
        root_report = _folder_report(json.loads(report.read_text()), card)
        assert root_report["skipped"] == []
        assert root_report["order"] == ["Alpha", "Zeta", "a.mp3", "b.mp3"]

    def test_environment_sort_key(self, card, tmp_path, monkeypatch):
        """Test DIRSORT_SORT_KEY is used when no option is given."""
        monkeypatch.setenv("DIRSORT_SORT_KEY", "LastWriteTime")
        report = tmp_path / "run.json"
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--dry-run", "--report", str(report)])

        assert result.exit_code == 0, result.output
        assert json.loads(report.read_text())["sort_key"] == "LastWriteTime"

    def test_fixture_tree_round_trip(self, tmp_path):
        """Test a full run over a fixture tree preserves content and attributes."""
        root = tmp_path / "fixtures"
        generate_fixture_tree(root, depth=2, width=3)
        before = snapshot_tree(root)
        runner = CliRunner()

        result = runner.invoke(sort, [str(root)])

        assert result.exit_code == 0, result.output
        assert snapshot_tree(root) == before

    def test_version(self):
        """Test --version prints the program name."""
        runner = CliRunner()

        result = runner.invoke(sort, ["--version"])

        assert result.exit_code == 0
        assert "dirsort" in result.output


class TestRecoverOption:
    """Test --recover."""

    def test_recovers_staging(self, card):
        """Test entries left in a staging folder are moved back."""
        staging = card / "~dirsort_deadbeef0000"
        staging.mkdir()
        (staging / "c.mp3").write_text("c")
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--recover"])

        assert result.exit_code == 0, result.output
        assert (card / "c.mp3").read_text() == "c"
        assert not staging.exists()

    def test_nothing_to_recover(self, card):
        """Test a clean tree reports no staging folders."""
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--recover"])

        assert result.exit_code == 0
        assert "No staging folders found" in result.output

    def test_collision_exits_nonzero(self, card):
        """Test an unrecoverable entry makes the command fail."""
        staging = card / "~dirsort_deadbeef0000"
        staging.mkdir()
        (staging / "a.mp3").write_text("staged")
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--recover"])

        assert result.exit_code == 1
        assert (staging / "a.mp3").exists()

    def test_exclusions_apply(self, card):
        """Test staging folders inside excluded folders are left alone."""
        staging = card / "Zeta" / "~dirsort_deadbeef0000"
        staging.mkdir()
        (staging / "c.mp3").write_text("c")
        runner = CliRunner()

        result = runner.invoke(sort, [str(card), "--recover", "-x", "Zeta"])

        assert result.exit_code == 0, result.output
        assert (staging / "c.mp3").exists()
        assert "No staging folders found" in result.output
