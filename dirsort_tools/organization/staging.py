"""
Staging area management.

A staging folder is a uniquely named, temporary child of the folder being
reordered. It holds the folder's children between the stage-out and
stage-back phases and is removed only once it is empty again.
"""

import logging
import os
import re
import secrets
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from ..core.config import DEFAULT_STAGING_PREFIX
from ..core.errors import StagingError
from ..shared.logging_utils import ActionTag, EventLogger

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .scanner import ExclusionSet

# Random bytes in a staging token; rendered as twice as many hex digits.
TOKEN_BYTES = 6
_TOKEN_PATTERN = re.compile(f"[0-9a-f]{{{TOKEN_BYTES * 2}}}")


def is_staging_name(name: str, prefix: str = DEFAULT_STAGING_PREFIX) -> bool:
    """Check whether ``name`` is ``prefix`` followed by a staging token."""
    if not prefix or not name.startswith(prefix):
        return False
    return _TOKEN_PATTERN.fullmatch(name[len(prefix) :]) is not None


class StagingArea:
    """Create and remove collision-free staging folders."""

    def __init__(
        self,
        simulate: bool = False,
        prefix: str = DEFAULT_STAGING_PREFIX,
        max_attempts: int = 8,
        events: Optional[EventLogger] = None,
    ):
        """
        Initialize the staging area manager.

        Args:
            simulate: If True, no folder is created or removed
            prefix: Leaf-name prefix marking staging folders
            max_attempts: Number of random names tried before giving up
            events: Logging sink
        """
        self.simulate = simulate
        self.prefix = prefix
        self.max_attempts = max_attempts
        self.events = events or EventLogger(logger)

    def is_staging_name(self, name: str) -> bool:
        return is_staging_name(name, self.prefix)

    def _candidate(self) -> str:
        return f"{self.prefix}{secrets.token_hex(TOKEN_BYTES)}"

    def acquire(self, parent: Path) -> Path:
        """
        Create a staging folder inside ``parent``.

        The name is checked against the current siblings case-insensitively
        (FAT volumes do not distinguish case) and created with an exclusive
        mkdir; a collision on either check retries with a fresh token.

        Args:
            parent: Folder being reordered

        Returns:
            Path of the staging folder (not created in simulate mode)

        Raises:
            StagingError: If no unique folder could be created
        """
        parent = Path(parent)
        try:
            siblings = {name.casefold() for name in os.listdir(parent)}
        except OSError as e:
            self.events.error(ActionTag.STAGE, f"Cannot list {parent}: {e}")
            raise StagingError(f"Cannot list {parent}: {e}") from e

        for _ in range(self.max_attempts):
            name = self._candidate()
            if name.casefold() in siblings:
                continue
            staging = parent / name

            if self.simulate:
                self.events.passed(
                    ActionTag.STAGE, f"[DRY RUN] Would create staging folder {staging}"
                )
                return staging

            try:
                os.mkdir(staging)
            except FileExistsError:
                siblings.add(name.casefold())
                continue
            except OSError as e:
                self.events.error(
                    ActionTag.STAGE, f"Cannot create staging folder {staging}: {e}"
                )
                raise StagingError(f"Cannot create {staging}: {e}") from e

            self.events.passed(ActionTag.STAGE, f"Created staging folder {staging}")
            return staging

        message = (
            f"No unique staging name found in {parent} "
            f"after {self.max_attempts} attempts"
        )
        self.events.error(ActionTag.STAGE, message)
        raise StagingError(message)

    def release(self, staging: Path) -> bool:
        """
        Remove a staging folder if it is empty.

        A non-empty staging folder means entries could not be moved back; it
        is left in place and reported so nothing is deleted with content.

        Args:
            staging: Folder returned by acquire()

        Returns:
            True if the folder was removed (or would be, in simulate mode)
        """
        if self.simulate:
            self.events.passed(
                ActionTag.UNSTAGE, f"[DRY RUN] Would remove staging folder {staging}"
            )
            return True

        try:
            leftovers = os.listdir(staging)
        except FileNotFoundError:
            logger.debug(f"Staging folder already gone: {staging}")
            return True
        except OSError as e:
            self.events.error(ActionTag.UNSTAGE, f"Cannot inspect {staging}: {e}")
            return False

        if leftovers:
            self.events.error(
                ActionTag.UNSTAGE,
                f"Staging folder {staging} still holds {len(leftovers)} "
                f"entries; left in place for recovery",
            )
            return False

        try:
            os.rmdir(staging)
        except OSError as e:
            self.events.error(
                ActionTag.UNSTAGE, f"Cannot remove staging folder {staging}: {e}"
            )
            return False

        self.events.passed(ActionTag.UNSTAGE, f"Removed staging folder {staging}")
        return True

    def find_leftovers(
        self, root: Path, exclusions: Optional["ExclusionSet"] = None
    ) -> List[Path]:
        """
        Find staging folders left under ``root`` by an interrupted run.

        Staging folders are searched inside too (a staged folder can hold a
        staging folder of its own). Other excluded folders and symlinks are
        not descended into.

        Args:
            root: Tree to search
            exclusions: Folders to prune from the search

        Returns:
            Staging folder paths, deepest first
        """
        found = []
        for dirpath, dirnames, _ in os.walk(root):
            kept = []
            for name in dirnames:
                path = Path(dirpath) / name
                if self.is_staging_name(name):
                    found.append(path)
                elif exclusions is not None and exclusions.matches(path):
                    logger.debug(f"Not searching {path}")
                    continue
                kept.append(name)
            dirnames[:] = kept
        found.sort(key=lambda p: len(p.parts), reverse=True)
        return found
