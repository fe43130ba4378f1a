"""Logging setup for peg-monitor: coloured level names on stderr, plus TRACE."""

import logging
import sys
from typing import TextIO

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# level name -> ANSI color
LEVEL_COLORS = {
    "TRACE": "\033[90m",
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}


class ColoredFormatter(logging.Formatter):
    """Formatter that highlights the level name when writing to a terminal."""

    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, fmt: str, datefmt: str, use_color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname)
        if not self.use_color or color is None:
            return super().format(record)

        plain = record.levelname
        record.levelname = f"{color}{self.BOLD}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def resolve_level(log_level: str) -> int:
    """Map a level name (including TRACE) to its numeric value; unknown -> INFO."""
    name = log_level.upper()
    if name == "TRACE":
        return TRACE
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str = "INFO", stream: TextIO | None = None) -> None:
    """Configure root logging for a CLI run.

    Records go to stderr so ``--json`` output on stdout stays parseable.
    At DEBUG, urllib3 is held at WARNING to keep one line per provider call;
    TRACE lets its connection pool chatter through.
    """
    out = stream or sys.stderr
    level = resolve_level(log_level)

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        ColoredFormatter(LOG_FORMAT, DATE_FORMAT, use_color=out.isatty())
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    urllib3_logger = logging.getLogger("urllib3")
    if level == TRACE:
        urllib3_logger.setLevel(TRACE)
    elif level == logging.DEBUG:
        urllib3_logger.setLevel(logging.WARNING)
