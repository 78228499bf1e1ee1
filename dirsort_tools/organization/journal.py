"""
In-memory journal of the moves made while reordering one folder.

Tracks every stage-out and stage-back move so that a failed reorder can
report exactly which entries are still sitting in the staging folder.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.types import MoveResult, MoveStatus


class MovePhase(str, Enum):
    """Phase of a folder reorder a move belongs to."""

    STAGE_OUT = "stage_out"
    STAGE_BACK = "stage_back"
    RECOVER = "recover"


class JournalRecord(BaseModel):
    """A single recorded move."""

    phase: MovePhase
    source: Path
    target: Path
    status: MoveStatus
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class MoveJournal(BaseModel):
    """Move records for one folder."""

    folder: Path
    staging: Optional[Path] = None
    records: List[JournalRecord] = Field(default_factory=list)

    def record(self, phase: MovePhase, result: MoveResult) -> JournalRecord:
        """
        Append a move result to the journal.

        Args:
            phase: Phase the move was made in
            result: Result returned by the mover

        Returns:
            Created record
        """
        entry = JournalRecord(
            phase=phase,
            source=result.source,
            target=result.target,
            status=result.status,
            error=result.error,
        )
        self.records.append(entry)
        return entry

    def count(self, phase: MovePhase, status: MoveStatus = MoveStatus.SUCCESS) -> int:
        return sum(1 for r in self.records if r.phase == phase and r.status == status)

    def still_staged(self) -> List[str]:
        """
        Names moved into staging and not yet moved back.

        Returns:
            Leaf names in stage-out order
        """
        returned = {
            r.source.name
            for r in self.records
            if r.phase in (MovePhase.STAGE_BACK, MovePhase.RECOVER)
            and r.status == MoveStatus.SUCCESS
        }
        return [
            r.target.name
            for r in self.records
            if r.phase == MovePhase.STAGE_OUT
            and r.status == MoveStatus.SUCCESS
            and r.target.name not in returned
        ]

    def has_failures(self) -> bool:
        return any(r.status == MoveStatus.FAILED for r in self.records)

    def get_statistics(self) -> Dict[str, int]:
        """
        Get move counts by status.

        Returns:
            Dictionary with total and per-status counts
        """
        stats = {"total": len(self.records)}
        for status in MoveStatus:
            stats[status.value] = sum(1 for r in self.records if r.status == status)
        return stats
