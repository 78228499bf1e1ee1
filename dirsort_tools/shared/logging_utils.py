"""
Action-tagged logging for dirsort-tools.

Every event carries a level (INFO, PASS, FAIL, ERROR, WARN) and an action tag
so that an operator can trace each scan, move and staging operation back to a
full path. PASS and FAIL are registered as custom logging levels.
"""

import logging
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

PASS = 25
FAIL = 45

logging.addLevelName(PASS, "PASS")
logging.addLevelName(FAIL, "FAIL")

LOG_THEME = Theme(
    {
        "logging.level.pass": "bold green",
        "logging.level.fail": "bold red",
    }
)


class LogLevel(Enum):
    """Event levels understood by the logging sink."""

    INFO = logging.INFO
    PASS = PASS
    WARN = logging.WARNING
    ERROR = logging.ERROR
    FAIL = FAIL


class ActionTag(str, Enum):
    """What the engine was doing when it emitted an event."""

    SCAN = "SCAN"
    STAGE = "STAGE"
    UNSTAGE = "UNSTAGE"
    MOVE = "MOVE"
    SKIP = "SKIP"
    ATTRIB = "ATTRIB"
    FOLDER = "FOLDER"
    WALK = "WALK"
    RECOVER = "RECOVER"


class EventLogger:
    """Logging sink accepting (level, action, message) events."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("dirsort_tools")

    def emit(self, level: LogLevel, action: ActionTag, message: str) -> None:
        self.logger.log(
            level.value, f"[{action.value}] {message}", extra={"action": action.value}
        )

    def info(self, action: ActionTag, message: str) -> None:
        self.emit(LogLevel.INFO, action, message)

    def passed(self, action: ActionTag, message: str) -> None:
        self.emit(LogLevel.PASS, action, message)

    def warn(self, action: ActionTag, message: str) -> None:
        self.emit(LogLevel.WARN, action, message)

    def error(self, action: ActionTag, message: str) -> None:
        self.emit(LogLevel.ERROR, action, message)

    def fail(self, action: ActionTag, message: str) -> None:
        self.emit(LogLevel.FAIL, action, message)


def setup_logging(
    verbose: bool = False, quiet: bool = False, console: Optional[Console] = None
) -> None:
    """
    Configure logging with a rich handler.

    Args:
        verbose: If True, set logging level to DEBUG
        quiet: If True, only show warnings and errors
        console: Console to render to (should be built with LOG_THEME)
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                rich_tracebacks=True,
                console=console or Console(theme=LOG_THEME),
                show_path=verbose,
            )
        ],
    )
