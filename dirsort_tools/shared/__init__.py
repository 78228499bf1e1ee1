"""
Shared utilities for dirsort-tools.

Logging, checksums and the development fixture generator.
"""

from .fs_utils import compute_checksum, format_bytes
from .logging_utils import (
    FAIL,
    LOG_THEME,
    PASS,
    ActionTag,
    EventLogger,
    LogLevel,
    setup_logging,
)

__all__ = [
    "compute_checksum",
    "format_bytes",
    "FAIL",
    "LOG_THEME",
    "PASS",
    "ActionTag",
    "EventLogger",
    "LogLevel",
    "setup_logging",
]
