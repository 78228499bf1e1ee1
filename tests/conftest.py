"""
Pytest configuration and fixtures for dirsort_tools tests.
"""

import time
from pathlib import Path
from typing import Callable, Iterable, List

import pytest

from dirsort_tools.core.config import SortSettings
from dirsort_tools.organization import ExclusionSet, Resequencer
from dirsort_tools.shared.fixtures import unprotect_tree

# File-system timestamps come from a coarse kernel clock.
TIMESTAMP_GAP = 0.05


@pytest.fixture(autouse=True)
def _unprotect_tmp(tmp_path: Path):
    """Make everything under tmp_path writable again so it can be removed."""
    yield
    if tmp_path.exists():
        unprotect_tree(tmp_path)


@pytest.fixture
def folder(tmp_path: Path) -> Path:
    """An empty folder to reorder."""
    path = tmp_path / "music"
    path.mkdir()
    return path


@pytest.fixture
def populate() -> Callable[..., List[Path]]:
    """Create files and subfolders in order, optionally spaced in time."""

    def _populate(
        parent: Path,
        files: Iterable[str] = (),
        folders: Iterable[str] = (),
        spaced: bool = False,
    ) -> List[Path]:
        created = []
        for name in folders:
            path = parent / name
            path.mkdir()
            created.append(path)
            if spaced:
                time.sleep(TIMESTAMP_GAP)
        for name in files:
            path = parent / name
            path.write_text(f"content of {name}\n")
            created.append(path)
            if spaced:
                time.sleep(TIMESTAMP_GAP)
        return created

    return _populate


@pytest.fixture
def make_resequencer() -> Callable[..., Resequencer]:
    """Build a Resequencer with the standard exclusions and given settings."""

    def _make(**overrides) -> Resequencer:
        settings = SortSettings(**overrides)
        exclusions = ExclusionSet.default(
            extra=settings.exclude, staging_prefix=settings.staging_prefix
        )
        return Resequencer(settings, exclusions)

    return _make


@pytest.fixture
def staging_folders() -> Callable[[Path], List[str]]:
    """Return the names of staging folders directly inside a folder."""

    def _staging_folders(parent: Path) -> List[str]:
        return [p.name for p in parent.iterdir() if p.name.startswith("~dirsort_")]

    return _staging_folders
