"""Logging configuration for processes that host the cache.

The library itself only creates module loggers under `tmplcache.*`; hosts
that want console or file output call `setup_logging` once at startup.
"""

import logging
import sys
from typing import Optional

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PACKAGE_LOGGER = 'tmplcache'


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> None:
    """Replaces the root logger's handlers with a stdout handler and an optional file handler.

    Args:
        log_level: Threshold for both the root logger and the cache's loggers.
        log_format: `logging.Formatter` format string.
        log_file: Also append records to this file when given.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(log_level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(log_level)

    formatter = logging.Formatter(log_format)
    root.addHandler(_handler(logging.StreamHandler(sys.stdout), log_level, formatter))

    if log_file:
        try:
            root.addHandler(_handler(logging.FileHandler(log_file, encoding='utf-8'), log_level, formatter))
        except OSError as e:
            root.error(f"Cannot write log file {log_file}, logging to stdout only: {e}")

    root.debug(f"Logging ready at {logging.getLevelName(log_level)}")


def level_from_name(name: str, default: int = DEFAULT_LOG_LEVEL) -> int:
    """Maps a level name such as 'debug' to its logging constant."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default
