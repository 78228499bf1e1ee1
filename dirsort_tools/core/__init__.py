"""Core types, configuration and errors shared by every component."""

from .config import SortSettings
from .errors import DirsortError, RootPathError, ScanError, StagingError
from .types import (
    Entry,
    EntryAttribute,
    EntryKind,
    FolderReport,
    FolderStatus,
    MoveResult,
    MoveStatus,
    RunResult,
    SortCriterion,
)

__all__ = [
    "SortSettings",
    "DirsortError",
    "RootPathError",
    "ScanError",
    "StagingError",
    "Entry",
    "EntryAttribute",
    "EntryKind",
    "FolderReport",
    "FolderStatus",
    "MoveResult",
    "MoveStatus",
    "RunResult",
    "SortCriterion",
]
