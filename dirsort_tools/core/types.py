"""
Type definitions for directory re-sequencing.
"""

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EntryKind(Enum):
    """Kind of file-system entry."""

    FILE = "file"
    FOLDER = "folder"


class EntryAttribute(Enum):
    """Protection attribute carried by an entry.

    An entry with no attributes is Normal.
    """

    READ_ONLY = "ReadOnly"
    HIDDEN = "Hidden"


class SortCriterion(str, Enum):
    """Key used to compute the target entry order."""

    NAME = "Name"
    CREATION_TIME = "CreationTime"
    LAST_WRITE_TIME = "LastWriteTime"
    LENGTH = "Length"


class MoveStatus(Enum):
    """Outcome of a single entry move."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class FolderStatus(Enum):
    """Outcome of reordering one folder."""

    SORTED = "sorted"
    EMPTY = "empty"
    SKIPPED = "skipped"  # read-only folder left alone under the skip policy
    SCAN_FAILED = "scan_failed"
    STAGING_FAILED = "staging_failed"
    ABORTED = "aborted"  # stage-out failed, staged entries left in staging
    FAILED = "failed"  # stage-back failed, staging folder left non-empty


class Entry(BaseModel):
    """A file or folder captured by a directory scan."""

    path: Path = Field(description="Absolute path of the entry")
    kind: EntryKind = Field(description="File or folder")
    attributes: FrozenSet[EntryAttribute] = Field(
        default_factory=frozenset,
        description="Protection attributes (empty means Normal)",
    )
    created: datetime = Field(description="Creation time (ctime where unavailable)")
    modified: datetime = Field(description="Last write time")
    size: int = Field(default=0, description="Length in bytes, 0 for folders")
    is_symlink: bool = Field(default=False, description="Entry is a symbolic link")

    model_config = ConfigDict(frozen=True)

    @property
    def name(self) -> str:
        """Leaf name of the entry."""
        return self.path.name

    @property
    def is_folder(self) -> bool:
        return self.kind == EntryKind.FOLDER

    @property
    def is_protected(self) -> bool:
        """True if the entry is ReadOnly or Hidden."""
        return bool(self.attributes)

    def relocated(self, new_path: Path) -> "Entry":
        """Return a copy of this entry at a different path."""
        return self.model_copy(update={"path": new_path})


class MoveResult(BaseModel):
    """Result of relocating one entry."""

    source: Path
    target: Path
    status: MoveStatus
    reason: Optional[str] = Field(default=None, description="Why a move was skipped")
    error: Optional[str] = Field(default=None, description="Why a move failed")
    attributes_restored: bool = Field(
        default=True,
        description="False if protection could not be reapplied after the move",
    )
    simulated: bool = False

    @property
    def ok(self) -> bool:
        return self.status == MoveStatus.SUCCESS


class FolderReport(BaseModel):
    """Result of reordering a single folder."""

    folder: Path
    status: FolderStatus = FolderStatus.SORTED
    scanned: int = 0
    staged: int = 0
    restored: int = 0
    order: List[str] = Field(
        default_factory=list,
        description="Names moved back into the folder, in physical order",
    )
    skipped: List[str] = Field(default_factory=list)
    attribute_warnings: List[str] = Field(default_factory=list)
    staging_path: Optional[Path] = None
    staging_left: Optional[Path] = Field(
        default=None,
        description="Non-empty staging folder left behind for manual recovery",
    )
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (
            FolderStatus.SORTED,
            FolderStatus.EMPTY,
            FolderStatus.SKIPPED,
        )


class RunResult(BaseModel):
    """Result of a full tree run."""

    root: Path
    sort_key: SortCriterion = SortCriterion.NAME
    dry_run: bool = False
    total_folders: int = 0
    reports: List[FolderReport] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def sorted_folders(self) -> int:
        return sum(1 for r in self.reports if r.status == FolderStatus.SORTED)

    @property
    def empty_folders(self) -> int:
        return sum(1 for r in self.reports if r.status == FolderStatus.EMPTY)

    @property
    def skipped_folders(self) -> int:
        return sum(1 for r in self.reports if r.status == FolderStatus.SKIPPED)

    @property
    def failed_folders(self) -> List[FolderReport]:
        return [r for r in self.reports if not r.ok]

    @property
    def moved(self) -> int:
        return sum(r.restored for r in self.reports)

    @property
    def skipped(self) -> int:
        return sum(len(r.skipped) for r in self.reports)

    @property
    def staging_left(self) -> List[Path]:
        return [r.staging_left for r in self.reports if r.staging_left is not None]

    def save(self, report_path: Path) -> None:
        """
        Save the run result as JSON.

        Args:
            report_path: Path to write the report to
        """
        report_path.parent.mkdir(parents=True, exist_ok=True)

        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)
