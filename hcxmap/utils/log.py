"""
hcxmap logging.

Every `hcxmap.*` logger writes to the terminal through Rich. During
`hcxmap locate` each record is also appended, one JSON object per line, to
`locate.log` in the current directory.
"""

import json
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler

ROOT_LOGGER = "hcxmap"
FILE_LOG_COMMAND = "locate"

# CLI names accepted by `--log-level`; there is no TRACE level in logging
LEVELS = {
    "off": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the traceback when there is one."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _console_handler() -> logging.Handler:
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setLevel(logging.NOTSET)
    return handler


def _file_handler(path: Path) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.NOTSET)
    handler.setFormatter(JSONFormatter())
    return handler


def get_logger(name: str, level: int | str = logging.INFO) -> logging.Logger:
    """
    Return the logger `name`, attaching hcxmap's handlers on first use.

    Parameters
    ----------
    name
        Logger name, usually ``__name__``.
    level
        Initial level; `set_level` overrides it once the CLI has parsed
        ``--log-level``.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    logger.addHandler(_console_handler())
    # the global --log-level option may precede the subcommand
    if FILE_LOG_COMMAND in sys.argv[1:]:
        logger.addHandler(_file_handler(Path.cwd() / f"{FILE_LOG_COMMAND}.log"))
    return logger


def set_level(level: str) -> int:
    """
    Apply a `LEVELS` name (case-insensitive) to every hcxmap logger created
    so far and return the numeric level.
    """
    numeric = LEVELS[level.lower()]
    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and (
            name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + ".")
        ):
            logger.setLevel(numeric)
    return numeric
