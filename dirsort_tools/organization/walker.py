"""
Tree traversal.

Discovers every folder under a root and hands each one to the re-sequencer.
A reorder only touches a folder's direct children and always puts them back
under the same names, so folder paths stay valid whatever the visiting
order.

Folders are reordered children first. Reordering a subfolder changes its
ctime, so its parent has to be the last one to move it, in sorted order.
The sort keys of subfolders are taken from a snapshot made before any
folder is touched.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from ..core.errors import RootPathError
from ..core.types import Entry, FolderReport, FolderStatus, RunResult
from ..shared.logging_utils import ActionTag, EventLogger
from .resequencer import Resequencer
from .scanner import ExclusionSet, read_entry

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Observer notified once per folder visited."""

    def __call__(self, current: int, total: int, description: str) -> None: ...


class TreeWalker:
    """Walk a tree and reorder every folder in it."""

    def __init__(
        self,
        exclusions: Optional[ExclusionSet] = None,
        events: Optional[EventLogger] = None,
    ):
        self.exclusions = exclusions or ExclusionSet()
        self.events = events or EventLogger(logger)

    def validate_root(self, root: Path) -> Path:
        """
        Check that ``root`` is a readable folder.

        Raises:
            RootPathError: If it is not
        """
        root = Path(root).expanduser().resolve()
        if not root.is_dir():
            raise RootPathError(f"Not a folder: {root}")
        try:
            os.listdir(root)
        except OSError as e:
            raise RootPathError(f"Cannot read {root}: {e}") from e
        return root

    def discover(self, root: Path) -> List[Path]:
        """
        List ``root`` and every folder below it.

        Excluded folders and staging folders are pruned with their subtrees;
        symlinked folders are not followed. Unreadable folders are reported
        and their subtrees skipped.

        Args:
            root: Tree root

        Returns:
            Folder paths, root first; every folder precedes its descendants

        Raises:
            RootPathError: If the root itself is unusable
        """
        root = self.validate_root(root)

        def on_error(error: OSError) -> None:
            self.events.error(ActionTag.WALK, f"Cannot read {error.filename}: {error}")

        folders = [root]
        for dirpath, dirnames, _ in os.walk(root, onerror=on_error):
            kept = []
            for name in dirnames:
                path = Path(dirpath) / name
                if self.exclusions.matches(path) or os.path.islink(path):
                    logger.debug(f"Not descending into {path}")
                    continue
                kept.append(name)
            dirnames[:] = kept
            folders.extend(Path(dirpath) / name for name in kept)

        self.events.info(ActionTag.WALK, f"Found {len(folders)} folders under {root}")
        return folders

    def snapshot(self, folders: List[Path]) -> Dict[Path, Entry]:
        """Capture every folder's entry before anything is moved."""
        originals = {}
        for folder in folders:
            try:
                originals[folder] = read_entry(folder)
            except OSError as e:
                logger.debug(f"No snapshot for {folder}: {e}")
        return originals

    def run(
        self,
        root: Path,
        resequencer: Resequencer,
        progress: Optional[ProgressSink] = None,
    ) -> RunResult:
        """
        Reorder every folder under ``root``, children before parents.

        Each folder is processed independently; a failure in one is recorded
        in its report and the walk continues.

        Args:
            root: Tree root
            resequencer: Re-sequencer configured for this run
            progress: Optional progress observer

        Returns:
            Aggregated run result

        Raises:
            RootPathError: If the root itself is unusable
        """
        folders = self.discover(root)
        originals = self.snapshot(folders)
        settings = resequencer.settings
        result = RunResult(
            root=folders[0],
            sort_key=settings.sort_key,
            dry_run=settings.simulate,
            total_folders=len(folders),
        )

        # discover() lists every folder before its descendants.
        for index, folder in enumerate(reversed(folders), start=1):
            try:
                report = resequencer.reorder(folder, originals=originals)
            except OSError as e:
                report = FolderReport(
                    folder=folder, status=FolderStatus.FAILED, error=str(e)
                )
                self.events.fail(ActionTag.FOLDER, f"Reorder of {folder} failed: {e}")
            result.reports.append(report)

            if progress is not None:
                progress(index, len(folders), str(folder))

        result.completed_at = datetime.now()
        logger.info(
            f"Processed {len(folders)} folders: {result.sorted_folders} sorted, "
            f"{len(result.failed_folders)} failed"
        )
        return result
