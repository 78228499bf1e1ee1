"""
Fixture tree generator for manual and automated verification.

Builds a folder tree whose entries cover every combination of Normal,
ReadOnly and Hidden, with known content, and snapshots a tree so that a
reorder can be checked for content and attribute preservation.

Development only: the re-sequencing engine never imports this module.
"""

import itertools
import logging
import os
import stat
from pathlib import Path
from typing import Dict, FrozenSet, List, NamedTuple, Optional

from ..organization.attributes import (
    FILE_ATTRIBUTE_HIDDEN,
    FILE_ATTRIBUTE_READONLY,
    read_state,
    set_windows_attributes,
)
from .fs_utils import compute_checksum

logger = logging.getLogger(__name__)

ATTRIBUTE_COMBINATIONS = [
    (False, False),
    (True, False),
    (False, True),
    (True, True),
]


class SnapshotItem(NamedTuple):
    kind: str
    checksum: Optional[str]
    attributes: FrozenSet[str]


def _label(read_only: bool, hidden: bool) -> str:
    parts = [p for p, on in (("ro", read_only), ("hidden", hidden)) if on]
    return "_".join(parts) or "normal"


def _leaf_name(stem: str, read_only: bool, hidden: bool, suffix: str = "") -> str:
    name = f"{stem}_{_label(read_only, hidden)}{suffix}"
    # POSIX has no hidden flag on most file systems; a leading dot is the convention.
    if hidden and os.name != "nt":
        name = "." + name
    return name


def protect(path: Path, read_only: bool, hidden: bool) -> None:
    """Apply ReadOnly/Hidden to an entry the way the platform expresses them."""
    if os.name == "nt":
        value = 0
        if read_only:
            value |= FILE_ATTRIBUTE_READONLY
        if hidden:
            value |= FILE_ATTRIBUTE_HIDDEN
        set_windows_attributes(path, value)
        return

    if read_only:
        mode = stat.S_IMODE(os.stat(path).st_mode)
        os.chmod(path, mode & ~(stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH))


def generate_fixture_tree(root: Path, depth: int = 2, width: int = 2) -> List[Path]:
    """
    Create a fixture tree under ``root``.

    Every folder gets one file per attribute combination plus ``width``
    subfolders (also one per combination, cycling), down to ``depth`` levels.
    Protection is applied bottom-up once all content exists.

    Args:
        root: Folder to populate (created if missing)
        depth: Levels of subfolders below root
        width: Subfolders per folder

    Returns:
        Every path created, files and folders
    """
    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)
    created: List[Path] = []
    to_protect: List[tuple] = []

    def populate(folder: Path, level: int) -> None:
        for index, (read_only, hidden) in enumerate(ATTRIBUTE_COMBINATIONS):
            path = folder / _leaf_name(f"file{index}", read_only, hidden, ".txt")
            path.write_text(f"{path.name} at level {level}\n" * (index + 1))
            created.append(path)
            to_protect.append((path, read_only, hidden))

        if level >= depth:
            return

        combos = itertools.cycle(ATTRIBUTE_COMBINATIONS)
        for index in range(width):
            read_only, hidden = next(combos)
            sub = folder / _leaf_name(f"folder{index}", read_only, hidden)
            sub.mkdir()
            created.append(sub)
            populate(sub, level + 1)
            to_protect.append((sub, read_only, hidden))

    populate(root, 1)

    for path, read_only, hidden in to_protect:
        protect(path, read_only, hidden)

    logger.info(f"Generated {len(created)} fixture entries under {root}")
    return created


def snapshot_tree(root: Path) -> Dict[str, SnapshotItem]:
    """
    Capture (kind, checksum, attributes) for every entry under ``root``.

    Args:
        root: Tree to snapshot

    Returns:
        Mapping of POSIX-style relative path to snapshot item
    """
    root = Path(root)
    snapshot: Dict[str, SnapshotItem] = {}

    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = Path(dirpath) / name
            rel = path.relative_to(root).as_posix()
            state = read_state(path)
            attributes = frozenset(a.value for a in state.attributes)
            if path.is_dir() and not path.is_symlink():
                snapshot[rel] = SnapshotItem("folder", None, attributes)
            else:
                snapshot[rel] = SnapshotItem("file", compute_checksum(path), attributes)

    return snapshot


def unprotect_tree(root: Path) -> None:
    """Make every entry under ``root`` writable so it can be deleted."""
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = Path(dirpath) / name
            if os.name == "nt":
                set_windows_attributes(path, 0)
            elif not path.is_symlink():
                os.chmod(path, stat.S_IMODE(os.stat(path).st_mode) | stat.S_IWUSR)
