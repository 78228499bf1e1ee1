"""Exceptions raised by dirsort-tools."""


class DirsortError(Exception):
    """Base class for all dirsort-tools errors."""


class RootPathError(DirsortError):
    """The root path is missing, not a folder, or unreadable.

    This is the only condition that aborts a whole run.
    """


class ScanError(DirsortError):
    """A folder could not be enumerated."""

    def __init__(self, folder, cause: Exception):
        super().__init__(f"Cannot scan {folder}: {cause}")
        self.folder = folder
        self.cause = cause


class StagingError(DirsortError):
    """A staging folder could not be created."""
