"""This module defines log formats, a caching log handler and the logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from collections import deque
from typing import Sequence

from .config import get_config


__all__ = [
    "CachedHandler",
    "LOG_FMT_LONG",
    "ROOT_LOGGER_NAME",
    "setup_logging",
]

ROOT_LOGGER_NAME = "stepsql"

LOG_FMT_LONG = logging.Formatter(
    fmt="%(asctime)s %(module)s %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


class CachedHandler(logging.Handler):
    """Handler which stores past records

    :param level: Initial log level. Defaults to NOTSET.
    :param maxlen: Maximum number of records to store. If ``None``, all records will be
        stored. Defaults to ``None``.
    """

    cached_records: deque[logging.LogRecord]

    def __init__(self, level: int = logging.NOTSET, maxlen: int | None = None) -> None:
        super().__init__(level=level)
        self.cached_records = deque([], maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        """
        Logs the specified log record and saves it to the cache.

        :param record: Log record.
        """
        self.cached_records.append(record)

    def get_all_messages(self) -> list[str]:
        """
        :returns: A list of all record messages.
        """
        return [r.getMessage() for r in self.cached_records]


def setup_logging(
    level: int | None = None,
    stderr: bool = True,
    file: str | None = None,
) -> Sequence[logging.Handler]:
    """
    Attaches log handlers to the ``stepsql`` logger.

    :param level: Log level. Defaults to ``log_level`` from the ``[app]`` section of
        the config.
    :param stderr: Whether to log to stderr.
    :param file: Path of a log file. Files are rotated at 10 MB.
    :returns: Log handlers.
    """
    if level is None:
        level = get_config().get("app", "log_level")

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    handlers: list[logging.Handler] = []

    # Log to file.
    if file:
        log_handler_file = RotatingFileHandler(file, maxBytes=10**7, backupCount=1)
        log_handler_file.setFormatter(LOG_FMT_LONG)
        log_handler_file.setLevel(level)
        root_logger.addHandler(log_handler_file)
        handlers.append(log_handler_file)

    # Log to stderr if requested.
    if stderr:
        log_handler_stream = logging.StreamHandler()
        log_handler_stream.setFormatter(LOG_FMT_LONG)
        log_handler_stream.setLevel(level)
        root_logger.addHandler(log_handler_stream)
        handlers.append(log_handler_stream)

    return handlers
