"""Tests for directory scanning and exclusions."""

import os
from pathlib import Path

import pytest

from dirsort_tools.core.errors import ScanError
from dirsort_tools.core.types import EntryAttribute, EntryKind
from dirsort_tools.organization.scanner import (
    RESERVED_FOLDERS,
    DirectoryScanner,
    ExclusionSet,
    read_entry,
    split_by_kind,
)
from dirsort_tools.shared.fixtures import protect


class TestExclusionSet:
    """Test exclusion matching."""

    def test_default_includes_reserved_folders(self):
        """Test reserved system folders are excluded by leaf name."""
        exclusions = ExclusionSet.default(tool_path=Path("/opt/tool/dirsort"))

        assert RESERVED_FOLDERS <= exclusions.names
        assert exclusions.matches(Path("/media/card/System Volume Information"))

    def test_tool_path_matched_by_full_path(self, tmp_path):
        """Test the running tool's own file is excluded only at its own path."""
        tool = tmp_path / "dirsort.py"
        exclusions = ExclusionSet.default(tool_path=tool)

        assert exclusions.matches(tool)
        assert not exclusions.matches(tmp_path / "sub" / "dirsort.py")

    def test_extra_names_and_paths(self, tmp_path):
        """Test extra entries are split into names and full paths."""
        exclusions = ExclusionSet.default(
            tool_path=tmp_path / "tool",
            extra=["Thumbs.db", str(tmp_path / "keep")],
        )

        assert exclusions.matches(tmp_path / "any" / "Thumbs.db")
        assert exclusions.matches(tmp_path / "keep")
        assert not exclusions.matches(tmp_path / "other" / "keep")

    def test_staging_prefix(self, tmp_path):
        """Test staging folders are excluded by prefix."""
        exclusions = ExclusionSet.default(tool_path=tmp_path / "tool")

        assert exclusions.matches(tmp_path / "~dirsort_0123456789ab")

    def test_staging_prefix_needs_token(self, tmp_path):
        """Test user names that merely start with the prefix are kept."""
        exclusions = ExclusionSet.default(tool_path=tmp_path / "tool")

        assert not exclusions.matches(tmp_path / "~dirsort_notes.txt")
        assert not exclusions.matches(tmp_path / "~dirsort_0123")
        assert not exclusions.matches(tmp_path / "~dirsort_0123456789AB")

    def test_name_match_is_exact(self):
        """Test leaf names must match exactly."""
        exclusions = ExclusionSet(names=frozenset({"lost+found"}))

        assert not exclusions.matches(Path("/x/lost+found2"))


class TestReadEntry:
    """Test entry snapshots."""

    def test_file(self, tmp_path):
        """Test a file's kind, size and times."""
        path = tmp_path / "track.mp3"
        path.write_bytes(b"x" * 42)

        entry = read_entry(path)

        assert entry.kind == EntryKind.FILE
        assert entry.size == 42
        assert entry.name == "track.mp3"
        assert entry.attributes == frozenset()
        assert entry.modified.timestamp() == pytest.approx(os.stat(path).st_mtime)

    def test_folder_has_zero_length(self, tmp_path):
        """Test folders are reported with length 0."""
        path = tmp_path / "album"
        path.mkdir()
        (path / "a").write_text("content")

        entry = read_entry(path)

        assert entry.kind == EntryKind.FOLDER
        assert entry.size == 0

    def test_read_only(self, tmp_path):
        """Test ReadOnly is captured."""
        path = tmp_path / "track.mp3"
        path.write_text("x")
        protect(path, read_only=True, hidden=False)

        entry = read_entry(path)

        assert entry.attributes == {EntryAttribute.READ_ONLY}
        assert entry.is_protected

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlink_to_folder_is_a_file(self, tmp_path):
        """Test symlinked folders are treated as plain entries, not followed."""
        target = tmp_path / "real"
        target.mkdir()
        link = tmp_path / "link"
        os.symlink(target, link)

        entry = read_entry(link)

        assert entry.kind == EntryKind.FILE
        assert entry.is_symlink


class TestDirectoryScanner:
    """Test directory scanning."""

    def test_lists_children(self, folder, populate):
        """Test immediate children are listed, not grandchildren."""
        populate(folder, files=["a.mp3", "b.mp3"], folders=["album"])
        (folder / "album" / "nested.mp3").write_text("x")

        entries = DirectoryScanner().scan(folder)

        assert sorted(e.name for e in entries) == ["a.mp3", "album", "b.mp3"]

    def test_applies_exclusions(self, folder, populate):
        """Test excluded and staging entries are left out."""
        populate(
            folder,
            files=["a.mp3"],
            folders=["System Volume Information", "~dirsort_0000deadbeef", "album"],
        )
        exclusions = ExclusionSet.default(tool_path=folder / "a.mp3")

        entries = DirectoryScanner(exclusions).scan(folder)

        assert [e.name for e in entries] == ["album"]

    def test_prefixed_user_file_is_listed(self, folder, populate):
        """Test a user file named like the staging prefix is scanned."""
        populate(folder, files=["~dirsort_notes.txt"])
        exclusions = ExclusionSet.default(tool_path=folder / "tool")

        entries = DirectoryScanner(exclusions).scan(folder)

        assert [e.name for e in entries] == ["~dirsort_notes.txt"]

    def test_empty_folder(self, folder):
        """Test an empty folder scans to an empty list."""
        assert DirectoryScanner().scan(folder) == []

    def test_missing_folder(self, tmp_path, caplog):
        """Test an unreadable folder raises ScanError and logs ERROR."""
        with pytest.raises(ScanError) as exc_info:
            DirectoryScanner().scan(tmp_path / "missing")

        assert exc_info.value.folder == tmp_path / "missing"
        assert any("[SCAN]" in r.getMessage() for r in caplog.records)


class TestSplitByKind:
    """Test kind grouping."""

    def test_keeps_relative_order(self, folder, populate):
        """Test folders and files are separated with their order kept."""
        populate(folder, files=["z.mp3", "a.mp3"], folders=["y", "b"])
        entries = [read_entry(folder / n) for n in ["z.mp3", "y", "a.mp3", "b"]]

        folders, files = split_by_kind(entries)

        assert [e.name for e in folders] == ["y", "b"]
        assert [e.name for e in files] == ["z.mp3", "a.mp3"]
