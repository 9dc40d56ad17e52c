"""
Centralized logging configuration for ipband.

TTY mode (interactive): Clean colored output with symbols
Non-TTY mode (systemd/journald, pipes): Timestamps, level and logger path
"""

import logging
import os
import sys
from datetime import datetime
from typing import Any, Optional

# Add TRACE level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def trace(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
    """Log trace message."""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)  # pylint: disable=protected-access


logging.Logger.trace = trace  # type: ignore[attr-defined]


class DaemonFormatter(logging.Formatter):
    """Formatter that adapts output to where the daemon is running.

    TTY mode (started by hand):
        ✓ Setting 42 bans
        ⚠ Skipping malformed ban address 'nope'
        ✗ Reconciliation failed, restarting in 4s

    Non-TTY mode (service manager, log files):
        2026-10-18 09:12:03.120 INFO > ipband/core.py:78: Setting 42 bans
        2026-10-18 09:12:03.311 ERROR > ipband/core.py:143: Reconciliation failed, restarting in 4s
    """

    GREY = "\033[90m"
    WHITE = "\033[97m"
    CYAN = "\033[96m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    RESET = "\033[0m"

    SYMBOLS = {
        "TRACE": "›",
        "DEBUG": "•",
        "INFO": "✓",
        "WARNING": "⚠",
        "ERROR": "✗",
        "CRITICAL": "✗",
    }

    COLORS = {
        "TRACE": GREY,
        "DEBUG": CYAN,
        "INFO": GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": RED,
    }

    def __init__(self, is_tty: bool):
        self.is_tty = is_tty
        if is_tty:
            super().__init__("%(message)s")
        else:
            super().__init__("%(asctime)s %(levelname)s > %(logger_path)s:%(lineno)d: %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        """Format time with milliseconds (non-TTY mode)."""
        if not self.is_tty:
            ct = datetime.fromtimestamp(record.created)
            return ct.strftime("%Y-%m-%d %H:%M:%S") + f".{int(record.msecs):03d}"
        return super().formatTime(record, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        if not self.is_tty:
            if record.name != "__main__":
                record.logger_path = record.name.replace(".", "/") + ".py"
            else:
                record.logger_path = os.path.basename(record.pathname)

        message = super().format(record)

        if self.is_tty:
            symbol = self.SYMBOLS.get(record.levelname, "›")
            color = self.COLORS.get(record.levelname, self.WHITE)
            return f"{color}{symbol}{self.RESET} {message}"

        return message


def resolve_level(level: Optional[str] = None) -> int:
    """Map a level name (or LOG_LEVEL env var) to a logging level, INFO if unknown."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if level == "TRACE":
        return TRACE
    value = getattr(logging, level, logging.INFO)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: Optional[str] = None, is_tty: Optional[bool] = None) -> None:
    """
    Setup logging for the daemon.

    Args:
        level: Log level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
               Defaults to LOG_LEVEL env var or INFO
        is_tty: Force TTY or structured output (default: detect from stderr)
    """
    if is_tty is None:
        is_tty = sys.stderr.isatty()

    handler = logging.StreamHandler()
    handler.setFormatter(DaemonFormatter(is_tty))

    logging.root.setLevel(resolve_level(level))
    logging.root.handlers = [handler]
