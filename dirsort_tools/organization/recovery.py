"""
Recovery of staging folders left behind by a failed or interrupted reorder.

Moves each staged entry back into the staging folder's parent and removes
the staging folder once it is empty. Entries whose name is already taken in
the parent stay in staging and are reported; nothing is deleted.
"""

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.errors import ScanError
from ..core.types import Entry, MoveStatus
from ..shared.logging_utils import ActionTag, EventLogger
from .attributes import unlocked_folder
from .journal import MoveJournal, MovePhase
from .mover import EntryMover
from .scanner import DirectoryScanner, ExclusionSet
from .staging import StagingArea

logger = logging.getLogger(__name__)


class RecoveryReport(BaseModel):
    """Outcome of recovering one staging folder."""

    staging: Path
    restored: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    removed: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.removed and not self.failed


def recover(
    root: Path,
    staging: StagingArea,
    mover: EntryMover,
    events: Optional[EventLogger] = None,
    exclusions: Optional[ExclusionSet] = None,
) -> List[RecoveryReport]:
    """
    Empty and remove every staging folder under ``root``.

    Nested staging folders are handled deepest first, so an entry staged
    inside an entry that was itself staged is restored before its parent
    moves. A read-only parent is unlocked while entries move back into it.

    Args:
        root: Tree to search
        staging: Staging area (its prefix identifies staging folders)
        mover: Mover used to put entries back
        events: Logging sink
        exclusions: Folders not searched for staging folders

    Returns:
        One report per staging folder found
    """
    events = events or EventLogger(logger)
    scanner = DirectoryScanner(ExclusionSet(), events)
    reports = []

    leftovers = staging.find_leftovers(Path(root), exclusions)
    events.info(
        ActionTag.RECOVER, f"Found {len(leftovers)} staging folders under {root}"
    )

    for folder in leftovers:
        report = RecoveryReport(staging=folder)
        reports.append(report)
        parent = folder.parent
        journal = MoveJournal(folder=parent, staging=folder)

        try:
            entries = scanner.scan(folder)
        except ScanError as e:
            report.error = str(e)
            events.fail(ActionTag.RECOVER, f"Cannot recover {folder}: {e}")
            continue

        try:
            with unlocked_folder(parent, not staging.simulate, events):
                _restore_entries(folder, entries, staging, mover, journal, report)
        except OSError as e:
            report.error = str(e)
            events.fail(ActionTag.RECOVER, f"Cannot recover {folder}: {e}")
            continue

        if report.failed:
            report.error = f"{len(report.failed)} entries could not be moved back"
            events.fail(
                ActionTag.RECOVER,
                f"{folder} still holds: {', '.join(report.failed)}",
            )
        elif report.removed:
            events.passed(
                ActionTag.RECOVER,
                f"Recovered {journal.count(MovePhase.RECOVER)} entries from {folder}",
            )

    return reports


def _restore_entries(
    folder: Path,
    entries: List[Entry],
    staging: StagingArea,
    mover: EntryMover,
    journal: MoveJournal,
    report: RecoveryReport,
) -> None:
    parent = folder.parent
    for entry in entries:
        result = mover.move(entry, parent / entry.name)
        journal.record(MovePhase.RECOVER, result)
        if result.status == MoveStatus.SUCCESS:
            report.restored.append(entry.name)
        else:
            report.failed.append(entry.name)

    if not report.failed:
        report.removed = staging.release(folder)
