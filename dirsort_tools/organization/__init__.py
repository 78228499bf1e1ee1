"""
Directory re-sequencing engine.

This module rewrites the physical order of directory entries so that devices
which enumerate entries in raw on-disk order show them sorted. Entries are
staged out of each folder and moved back in target order, with protection
attributes preserved and partial failures left in a recoverable state.
"""

from .attributes import AttributeGuard, AttributeState, read_state
from .journal import MoveJournal, MovePhase
from .mover import EntryMover
from .recovery import RecoveryReport, recover
from .resequencer import Resequencer, sort_entries
from .scanner import DirectoryScanner, ExclusionSet, read_entry
from .staging import StagingArea
from .walker import ProgressSink, TreeWalker

__all__ = [
    "AttributeGuard",
    "AttributeState",
    "read_state",
    "MoveJournal",
    "MovePhase",
    "EntryMover",
    "RecoveryReport",
    "recover",
    "Resequencer",
    "sort_entries",
    "DirectoryScanner",
    "ExclusionSet",
    "read_entry",
    "StagingArea",
    "ProgressSink",
    "TreeWalker",
]
