"""
utils/logger.py
---------------
Centralized logging configuration.
All modules should use `get_logger(__name__)` to obtain a logger instance.

Records below ERROR are written to stdout, ERROR and above to stderr.
"""

import logging
import sys
from typing import Iterable

from config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False

# Maps the database client's `log` option onto logging levels.
CLIENT_LEVELS: dict[str, int] = {
    "query": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class _BelowErrorFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def _init_logging() -> None:
    """Configure the root logger once."""
    global _initialized
    if _initialized:
        return
    formatter = logging.Formatter(_LOG_FORMAT, _DATE_FORMAT)

    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.setFormatter(formatter)
    out_handler.addFilter(_BelowErrorFilter())

    err_handler = logging.StreamHandler(sys.stderr)
    err_handler.setFormatter(formatter)
    err_handler.setLevel(logging.ERROR)

    root = logging.getLogger()
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root.addHandler(out_handler)
    root.addHandler(err_handler)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger.
    """
    _init_logging()
    return logging.getLogger(name)


def level_for(levels: Iterable[str]) -> int:
    """
    Translate a client `log` option into the lowest enabled logging level.

    Args:
        levels: Names such as ``("info", "warn", "error")``.

    Returns:
        A logging level; ERROR when nothing recognised is enabled.

    Raises:
        ValueError: If an unknown level name is given.
    """
    enabled = []
    for name in levels:
        if name not in CLIENT_LEVELS:
            raise ValueError(f"Unknown client log level: {name!r}")
        enabled.append(CLIENT_LEVELS[name])
    return min(enabled) if enabled else logging.ERROR


def set_level(logger_name: str, levels: Iterable[str]) -> logging.Logger:
    """Apply a client `log` option to the named logger and return it."""
    logger = get_logger(logger_name)
    logger.setLevel(level_for(levels))
    return logger
