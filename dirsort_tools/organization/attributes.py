"""
Attribute guard for protected entries.

ReadOnly and Hidden entries can refuse to be relocated (a read-only folder
cannot have its parent link rewritten on POSIX, Windows refuses to rename
some protected entries). The guard snapshots the entry's raw protection
state, clears it for the duration of the move and reapplies the snapshot to
the entry at its new path.

Platform mapping:
    Windows: FILE_ATTRIBUTE_READONLY / FILE_ATTRIBUTE_HIDDEN
    POSIX:   ReadOnly = owner write bit clear
             Hidden   = leading dot, or UF_HIDDEN where chflags exists
"""

import logging
import os
import stat
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, Iterator, Optional

from ..core.types import EntryAttribute
from ..shared.logging_utils import ActionTag, EventLogger

logger = logging.getLogger(__name__)

FILE_ATTRIBUTE_READONLY = 0x1
FILE_ATTRIBUTE_HIDDEN = 0x2
FILE_ATTRIBUTE_NORMAL = 0x80

# Attributes SetFileAttributesW accepts; everything else is read-only state.
_WINDOWS_SETTABLE = 0x1 | 0x2 | 0x4 | 0x20 | 0x100 | 0x1000 | 0x2000

_IS_WINDOWS = os.name == "nt"
_UF_HIDDEN = getattr(stat, "UF_HIDDEN", 0)


@dataclass(frozen=True)
class AttributeState:
    """Raw protection state of an entry, restorable exactly."""

    attributes: FrozenSet[EntryAttribute]
    mode: int
    flags: int = 0
    is_symlink: bool = False

    @property
    def is_protected(self) -> bool:
        return bool(self.attributes) and not self.is_symlink


def describe(attributes: Iterable[EntryAttribute]) -> str:
    """Render an attribute set as "ReadOnly, Hidden" or "Normal"."""
    names = sorted(a.value for a in attributes)
    return ", ".join(names) if names else "Normal"


def read_state(path: Path) -> AttributeState:
    """
    Read the protection state of an entry without following symlinks.

    Args:
        path: Entry to inspect

    Returns:
        Snapshot of the entry's attributes
    """
    st = os.stat(path, follow_symlinks=False)
    mode = stat.S_IMODE(st.st_mode)

    if stat.S_ISLNK(st.st_mode):
        return AttributeState(frozenset(), mode, is_symlink=True)

    attributes = set()
    if _IS_WINDOWS:
        flags = st.st_file_attributes
        if flags & FILE_ATTRIBUTE_READONLY:
            attributes.add(EntryAttribute.READ_ONLY)
        if flags & FILE_ATTRIBUTE_HIDDEN:
            attributes.add(EntryAttribute.HIDDEN)
    else:
        flags = getattr(st, "st_flags", 0)
        if not mode & stat.S_IWUSR:
            attributes.add(EntryAttribute.READ_ONLY)
        if Path(path).name.startswith(".") or flags & _UF_HIDDEN:
            attributes.add(EntryAttribute.HIDDEN)

    return AttributeState(frozenset(attributes), mode, flags)


def set_windows_attributes(path: Path, value: int) -> None:
    import ctypes

    value &= _WINDOWS_SETTABLE
    if not ctypes.windll.kernel32.SetFileAttributesW(
        str(path), value or FILE_ATTRIBUTE_NORMAL
    ):
        raise ctypes.WinError()


def clear_attributes(path: Path, state: AttributeState) -> None:
    """Make an entry Normal so it can be relocated."""
    if not state.is_protected:
        return

    if _IS_WINDOWS:
        set_windows_attributes(
            path, state.flags & ~(FILE_ATTRIBUTE_READONLY | FILE_ATTRIBUTE_HIDDEN)
        )
        return

    if EntryAttribute.READ_ONLY in state.attributes:
        os.chmod(path, state.mode | stat.S_IWUSR)
    if state.flags & _UF_HIDDEN and hasattr(os, "chflags"):
        os.chflags(path, state.flags & ~_UF_HIDDEN)


def apply_attributes(path: Path, state: AttributeState) -> None:
    """Reapply a recorded protection state to an entry."""
    if not state.is_protected:
        return

    if _IS_WINDOWS:
        set_windows_attributes(path, state.flags)
        return

    os.chmod(path, state.mode)
    if state.flags & _UF_HIDDEN and hasattr(os, "chflags"):
        os.chflags(path, state.flags)


def is_locked_folder(folder: Path) -> bool:
    """
    Check whether a folder's children cannot be added or removed as is.

    True for a POSIX folder without owner write permission. A Windows
    ReadOnly folder attribute does not restrict its contents.
    """
    if _IS_WINDOWS:
        return False
    return not os.stat(folder).st_mode & stat.S_IWUSR


@contextmanager
def unlocked_folder(
    folder: Path, enabled: bool = True, events: Optional[EventLogger] = None
) -> Iterator[bool]:
    """
    Temporarily grant owner write permission on a read-only POSIX folder.

    Adding and removing children requires write permission on the folder
    itself on POSIX; a Windows ReadOnly folder attribute does not restrict
    its contents, so this is a no-op there.

    Args:
        folder: Folder whose children are about to move
        enabled: False in simulate mode or when protection may not be stripped
        events: Logging sink

    Yields:
        True if the folder was unlocked
    """
    if not enabled or not is_locked_folder(folder):
        yield False
        return

    events = events or EventLogger(logger)
    mode = stat.S_IMODE(os.stat(folder).st_mode)
    os.chmod(folder, mode | stat.S_IWUSR)
    logger.debug(f"Unlocked read-only folder {folder}")
    try:
        yield True
    finally:
        try:
            os.chmod(folder, mode)
        except OSError as e:
            events.warn(
                ActionTag.ATTRIB, f"Could not restore ReadOnly on {folder}: {e}"
            )


class AttributeGuard:
    """
    Context manager that clears protection around a relocation.

    On a clean exit the recorded state is reapplied at ``target``; a failure
    to do so is reported as WARN and leaves ``restored`` False. If the body
    raises, the entry never moved, so the state is reapplied at ``source``
    and the exception propagates.

    Example:
        with AttributeGuard(src, dst) as guard:
            os.rename(src, dst)
        if not guard.restored:
            ...
    """

    def __init__(
        self,
        source: Path,
        target: Path,
        events: Optional[EventLogger] = None,
        state: Optional[AttributeState] = None,
    ):
        self.source = Path(source)
        self.target = Path(target)
        self.events = events or EventLogger(logger)
        self.state = state
        self.cleared = False
        self.restored = True

    def __enter__(self) -> "AttributeGuard":
        if self.state is None:
            self.state = read_state(self.source)
        if self.state.is_protected:
            clear_attributes(self.source, self.state)
            self.cleared = True
            logger.debug(
                f"Cleared {describe(self.state.attributes)} on {self.source}"
            )
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not self.cleared:
            return False

        if exc_type is None:
            self.restored = self._reapply(self.target)
        else:
            self._reapply(self.source)
        return False

    def _reapply(self, path: Path) -> bool:
        assert self.state is not None
        try:
            apply_attributes(path, self.state)
        except OSError as e:
            self.events.warn(
                ActionTag.ATTRIB,
                f"Could not restore {describe(self.state.attributes)} on {path}: {e}",
            )
            return False
        return True
