"""
Directory scanning with exclusions.

Lists the immediate children of a folder as Entry snapshots. The order of
the returned list is the enumeration order of the file system; ordering by
a sort criterion happens later in the re-sequencer.
"""

import logging
import os
import stat
import sys
from datetime import datetime
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import DEFAULT_STAGING_PREFIX
from ..core.errors import ScanError
from ..core.types import Entry, EntryKind
from ..shared.logging_utils import ActionTag, EventLogger
from .attributes import read_state
from .staging import is_staging_name

logger = logging.getLogger(__name__)

RESERVED_FOLDERS: FrozenSet[str] = frozenset(
    {
        "System Volume Information",
        "$RECYCLE.BIN",
        "RECYCLER",
        ".Trashes",
        ".Spotlight-V100",
        ".fseventsd",
        ".TemporaryItems",
        "lost+found",
    }
)


def _normalize(path) -> str:
    return os.path.normcase(os.path.abspath(path))


class ExclusionSet(BaseModel):
    """Paths and names that are never scanned, staged or moved."""

    paths: FrozenSet[str] = Field(
        default_factory=frozenset, description="Normalized full paths"
    )
    names: FrozenSet[str] = Field(
        default_factory=frozenset, description="Exact leaf names"
    )
    staging_prefixes: Tuple[str, ...] = Field(
        default=(), description="Prefixes of staging folders (prefix + hex token)"
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def default(
        cls,
        tool_path: Optional[Path] = None,
        extra: Iterable[str] = (),
        staging_prefix: str = DEFAULT_STAGING_PREFIX,
    ) -> "ExclusionSet":
        """
        Build the standard exclusion set.

        Args:
            tool_path: The running tool's own file (defaults to sys.argv[0])
            extra: Additional leaf names, or full paths if they contain a separator
            staging_prefix: Prefix of staging folders, excluded from every scan

        Returns:
            Exclusion set
        """
        if tool_path is None and sys.argv and sys.argv[0]:
            tool_path = Path(sys.argv[0])

        paths = set()
        names = set(RESERVED_FOLDERS)
        if tool_path is not None:
            paths.add(_normalize(tool_path))
        for item in extra:
            if os.path.isabs(item) or os.sep in item or "/" in item:
                paths.add(_normalize(item))
            else:
                names.add(item)

        return cls(
            paths=frozenset(paths),
            names=frozenset(names),
            staging_prefixes=(staging_prefix,) if staging_prefix else (),
        )

    def matches(self, path: Path) -> bool:
        """Check whether an entry is excluded by full path or leaf name."""
        name = Path(path).name
        if name in self.names:
            return True
        if any(is_staging_name(name, prefix) for prefix in self.staging_prefixes):
            return True
        return _normalize(path) in self.paths


def read_entry(path: Path) -> Entry:
    """
    Build an Entry snapshot for one path.

    Symbolic links are reported as files and never followed.

    Args:
        path: Entry path

    Returns:
        Entry with kind, attributes and sort keys

    Raises:
        OSError: If the entry cannot be stat'ed
    """
    st = os.stat(path, follow_symlinks=False)
    state = read_state(path)
    is_folder = stat.S_ISDIR(st.st_mode)
    created = getattr(st, "st_birthtime", None) or st.st_ctime

    return Entry(
        path=Path(path),
        kind=EntryKind.FOLDER if is_folder else EntryKind.FILE,
        attributes=state.attributes,
        created=datetime.fromtimestamp(created),
        modified=datetime.fromtimestamp(st.st_mtime),
        size=0 if is_folder else st.st_size,
        is_symlink=state.is_symlink,
    )


class DirectoryScanner:
    """Enumerate the immediate children of a folder."""

    def __init__(
        self,
        exclusions: Optional[ExclusionSet] = None,
        events: Optional[EventLogger] = None,
    ):
        self.exclusions = exclusions or ExclusionSet()
        self.events = events or EventLogger(logger)

    def scan(self, folder: Path) -> List[Entry]:
        """
        List the children of ``folder`` that are not excluded.

        Args:
            folder: Folder to enumerate

        Returns:
            Entries in enumeration order

        Raises:
            ScanError: If the folder or one of its children cannot be read
        """
        folder = Path(folder)
        try:
            with os.scandir(folder) as it:
                children = [Path(item.path) for item in it]
        except OSError as e:
            self.events.error(ActionTag.SCAN, f"Cannot scan {folder}: {e}")
            raise ScanError(folder, e) from e

        entries = []
        excluded = 0
        for child in children:
            if self.exclusions.matches(child):
                logger.debug(f"Excluded {child}")
                excluded += 1
                continue
            try:
                entries.append(read_entry(child))
            except OSError as e:
                self.events.error(ActionTag.SCAN, f"Cannot read {child}: {e}")
                raise ScanError(folder, e) from e

        self.events.info(
            ActionTag.SCAN,
            f"Scanned {folder}: {len(entries)} entries"
            + (f" ({excluded} excluded)" if excluded else ""),
        )
        return entries


def split_by_kind(entries: Iterable[Entry]) -> Tuple[List[Entry], List[Entry]]:
    """Split entries into (folders, files), keeping their relative order."""
    folders: List[Entry] = []
    files: List[Entry] = []
    for entry in entries:
        (folders if entry.is_folder else files).append(entry)
    return folders, files
