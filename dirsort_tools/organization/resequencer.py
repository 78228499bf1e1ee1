"""
Folder re-sequencing.

Rewrites the physical entry order of one folder. Every child is moved into a
staging folder, then moved back one by one in sorted order: folders first,
then files. Each move back appends a fresh directory entry, so the folder's
raw enumeration order ends up matching the sort.

Failure boundaries:
    stage-out failure  -> folder ABORTED, already staged entries stay in staging
    stage-back failure -> folder FAILED, remaining entries stay in staging
Neither case attempts a rollback; a non-empty staging folder is the
recoverable state reported to the operator (see recovery.py).
"""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..core.config import SortSettings
from ..core.errors import ScanError, StagingError
from ..core.types import Entry, FolderReport, FolderStatus, MoveStatus, SortCriterion
from ..shared.logging_utils import ActionTag, EventLogger
from .attributes import is_locked_folder, unlocked_folder
from .journal import MoveJournal, MovePhase
from .mover import EntryMover
from .scanner import DirectoryScanner, ExclusionSet, split_by_kind
from .staging import StagingArea

logger = logging.getLogger(__name__)

_SORT_KEYS: Dict[SortCriterion, Callable[[Entry], Any]] = {
    SortCriterion.NAME: lambda e: e.name.casefold(),
    SortCriterion.CREATION_TIME: lambda e: e.created,
    SortCriterion.LAST_WRITE_TIME: lambda e: e.modified,
    SortCriterion.LENGTH: lambda e: e.size,
}


def sort_entries(entries: Iterable[Entry], criterion: SortCriterion) -> List[Entry]:
    """
    Compute the target order: folders, then files, each sorted by ``criterion``.

    Names compare case-insensitively. Ties keep the order of ``entries``.

    Args:
        entries: Entries in enumeration order
        criterion: Sort key

    Returns:
        Entries in target physical order
    """
    key = _SORT_KEYS[SortCriterion(criterion)]
    folders, files = split_by_kind(entries)
    return sorted(folders, key=key) + sorted(files, key=key)


def _with_original_times(entry: Entry, original: Optional[Entry]) -> Entry:
    if original is None:
        return entry
    return entry.model_copy(
        update={"created": original.created, "modified": original.modified}
    )


class Resequencer:
    """Reorder the direct children of a folder."""

    def __init__(
        self,
        settings: Optional[SortSettings] = None,
        exclusions: Optional[ExclusionSet] = None,
        events: Optional[EventLogger] = None,
        scanner: Optional[DirectoryScanner] = None,
        staging: Optional[StagingArea] = None,
        mover: Optional[EntryMover] = None,
    ):
        """
        Initialize the re-sequencer.

        Collaborators not passed in are built from ``settings``.

        Args:
            settings: Run settings (sort key, simulate, protection policy)
            exclusions: Entries never touched (defaults to ExclusionSet.default)
            events: Logging sink shared with the collaborators
            scanner: Directory scanner override
            staging: Staging area override
            mover: Entry mover override
        """
        self.settings = settings or SortSettings()
        self.events = events or EventLogger(logger)
        if exclusions is None:
            exclusions = ExclusionSet.default(
                extra=self.settings.exclude,
                staging_prefix=self.settings.staging_prefix,
            )
        self.scanner = scanner or DirectoryScanner(exclusions, self.events)
        self.staging = staging or StagingArea(
            simulate=self.settings.simulate,
            prefix=self.settings.staging_prefix,
            events=self.events,
        )
        self.mover = mover or EntryMover(
            simulate=self.settings.simulate,
            preserve_protected=self.settings.preserve_protected,
            events=self.events,
        )

    def reorder(
        self, folder: Path, originals: Optional[Mapping[Path, Entry]] = None
    ) -> FolderReport:
        """
        Reorder the direct children of ``folder``.

        The folder's own access and modification times are put back
        afterwards, so a parent sorting by time sees the same keys on the
        next run.

        Args:
            folder: Folder to reorder
            originals: Entries captured before the run started, by path;
                their timestamps replace those read now, since reordering a
                subfolder touches its times

        Returns:
            Report describing the outcome; failures are reported, not raised
        """
        folder = Path(folder)
        report = FolderReport(folder=folder)

        try:
            entries = self.scanner.scan(folder)
            before = os.stat(folder)
        except (ScanError, OSError) as e:
            report.status = FolderStatus.SCAN_FAILED
            report.error = str(e)
            self.events.fail(ActionTag.FOLDER, f"Skipped {folder}: {e}")
            return report

        report.scanned = len(entries)
        if not entries:
            report.status = FolderStatus.EMPTY
            self.events.info(ActionTag.FOLDER, f"Nothing to reorder in {folder}")
            return report

        if not self.settings.preserve_protected and is_locked_folder(folder):
            report.status = FolderStatus.SKIPPED
            report.skipped = [entry.name for entry in entries]
            self.events.warn(ActionTag.SKIP, f"Skipped {folder}: folder is ReadOnly")
            return report

        if originals:
            entries = [_with_original_times(e, originals.get(e.path)) for e in entries]

        try:
            unlock = self.settings.preserve_protected and not self.settings.simulate
            with unlocked_folder(folder, unlock, self.events):
                return self._resequence(folder, entries, report)
        except OSError as e:
            if report.staging_path:
                report.status = FolderStatus.FAILED
            else:
                report.status = FolderStatus.STAGING_FAILED
            report.error = str(e)
            self.events.fail(ActionTag.FOLDER, f"Reorder of {folder} failed: {e}")
            return report
        finally:
            if not self.settings.simulate:
                self._restore_times(folder, before)

    def _restore_times(self, folder: Path, before: os.stat_result) -> None:
        try:
            os.utime(folder, ns=(before.st_atime_ns, before.st_mtime_ns))
        except OSError as e:
            self.events.warn(
                ActionTag.ATTRIB, f"Could not restore timestamps on {folder}: {e}"
            )

    def _resequence(
        self, folder: Path, entries: List[Entry], report: FolderReport
    ) -> FolderReport:
        try:
            staging = self.staging.acquire(folder)
        except StagingError as e:
            report.status = FolderStatus.STAGING_FAILED
            report.error = str(e)
            self.events.fail(ActionTag.FOLDER, f"Skipped {folder}: {e}")
            return report

        report.staging_path = staging
        journal = MoveJournal(folder=folder, staging=staging)

        # Stage out: every child, original leaf name, before anything moves back.
        staged: Dict[str, Entry] = {}
        for entry in entries:
            result = self.mover.move(entry, staging / entry.name)
            journal.record(MovePhase.STAGE_OUT, result)

            if result.status == MoveStatus.SKIPPED:
                report.skipped.append(entry.name)
                continue
            if result.status == MoveStatus.FAILED:
                report.status = FolderStatus.ABORTED
                report.error = f"Could not stage {entry.name}: {result.error}"
                return self._finish(report, journal, staging)

            if not result.attributes_restored:
                report.attribute_warnings.append(entry.name)
            staged[entry.name] = entry

        report.staged = journal.count(MovePhase.STAGE_OUT)

        try:
            ordered = sort_entries(
                self._staged_entries(staging, staged), self.settings.sort_key
            )
        except ScanError as e:
            report.status = FolderStatus.FAILED
            report.error = str(e)
            return self._finish(report, journal, staging)

        # Stage back: folders then files, in target order.
        for entry in ordered:
            result = self.mover.move(entry, folder / entry.name)
            journal.record(MovePhase.STAGE_BACK, result)

            if not result.ok:
                report.status = FolderStatus.FAILED
                report.error = (
                    f"Could not move {entry.name} back: {result.error or result.reason}"
                )
                break

            if not result.attributes_restored:
                report.attribute_warnings.append(entry.name)
            report.order.append(entry.name)
            report.restored += 1

        return self._finish(report, journal, staging)

    def _staged_entries(self, staging: Path, staged: Dict[str, Entry]) -> List[Entry]:
        """
        List what is actually in the staging folder.

        Sort keys come from the snapshot taken before staging: a rename can
        change ctime, which stands in for creation time on POSIX.
        """
        if self.settings.simulate:
            return [entry.relocated(staging / name) for name, entry in staged.items()]

        present = []
        for entry in self.scanner.scan(staging):
            snapshot = staged.get(entry.name)
            present.append(snapshot.relocated(entry.path) if snapshot else entry)
        return present

    def _finish(
        self, report: FolderReport, journal: MoveJournal, staging: Path
    ) -> FolderReport:
        if not self.staging.release(staging):
            report.staging_left = staging

        folder = report.folder
        if report.ok:
            self.events.passed(
                ActionTag.FOLDER,
                f"Reordered {folder}: {report.restored} entries by "
                f"{self.settings.sort_key.value}"
                + (f", {len(report.skipped)} skipped" if report.skipped else ""),
            )
            return report

        message = f"Reorder of {folder} {report.status.value}: {report.error}"
        left = journal.still_staged()
        if left and not self.settings.simulate:
            message += f"; still in {staging}: {', '.join(left)}"
        self.events.fail(ActionTag.FOLDER, message)
        if journal.has_failures():
            logger.debug(f"Move statistics for {folder}: {journal.get_statistics()}")
        return report
