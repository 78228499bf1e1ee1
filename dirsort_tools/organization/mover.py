"""
Entry relocation.

Moves a single file or folder with a same-volume rename. A rename rewrites
the directory entry in the destination folder, which is what places the
entry at the end of that folder's physical entry sequence; a copy fallback
is never used.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from ..core.types import Entry, MoveResult, MoveStatus
from ..shared.logging_utils import ActionTag, EventLogger
from .attributes import AttributeGuard, describe

logger = logging.getLogger(__name__)


class EntryMover:
    """Relocate entries, guarding protected ones."""

    def __init__(
        self,
        simulate: bool = False,
        preserve_protected: bool = True,
        events: Optional[EventLogger] = None,
    ):
        """
        Initialize the mover.

        Args:
            simulate: If True, report moves without performing them
            preserve_protected: If True, move ReadOnly/Hidden entries under an
                AttributeGuard; if False, skip them with a warning
            events: Logging sink
        """
        self.simulate = simulate
        self.preserve_protected = preserve_protected
        self.events = events or EventLogger(logger)

    def move(self, entry: Entry, target: Path) -> MoveResult:
        """
        Move ``entry`` to ``target``.

        The parent of ``target`` must already exist. An existing target is a
        failure: POSIX rename would otherwise replace a file silently.

        Args:
            entry: Entry to relocate
            target: Destination path

        Returns:
            Move result; failures are reported, never raised
        """
        source = entry.path
        target = Path(target)

        if entry.is_protected and not self.preserve_protected:
            reason = f"protected ({describe(entry.attributes)})"
            self.events.warn(ActionTag.SKIP, f"Skipped {source}: {reason}")
            return MoveResult(
                source=source, target=target, status=MoveStatus.SKIPPED, reason=reason
            )

        if self.simulate:
            self.events.passed(
                ActionTag.MOVE, f"[DRY RUN] Would move {source} → {target}"
            )
            return MoveResult(
                source=source,
                target=target,
                status=MoveStatus.SUCCESS,
                simulated=True,
            )

        if os.path.lexists(target):
            return self._failed(source, target, "destination already exists")

        restored = True
        try:
            if entry.is_protected:
                with AttributeGuard(source, target, self.events) as guard:
                    os.rename(source, target)
                restored = guard.restored
            else:
                os.rename(source, target)
        except OSError as e:
            return self._failed(source, target, str(e))

        if entry.is_protected:
            self.events.passed(
                ActionTag.MOVE,
                f"Moved {source} → {target} (kept {describe(entry.attributes)})"
                if restored
                else f"Moved {source} → {target} (attributes not restored)",
            )
        else:
            self.events.passed(ActionTag.MOVE, f"Moved {source} → {target}")

        return MoveResult(
            source=source,
            target=target,
            status=MoveStatus.SUCCESS,
            attributes_restored=restored,
        )

    def _failed(self, source: Path, target: Path, error: str) -> MoveResult:
        self.events.error(ActionTag.MOVE, f"Cannot move {source} → {target}: {error}")
        return MoveResult(
            source=source, target=target, status=MoveStatus.FAILED, error=error
        )
