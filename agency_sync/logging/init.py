from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Console logging for agency_sync.

Every module logs through ``logging.getLogger(__name__)``. setup_logging()
attaches one stdout handler to the ``agency_sync`` package logger; its lines
carry a short level label:

    INFO sync: 3 workbooks under /share/agencies
    WARN table=Agency South.xlsx table 'Agency South.xlsx' missing required columns: [...]
    SUMMARY tables=2/3 done=2 failed=0 ...
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "set_debug",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "agency_sync"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25

_SUMMARY_PREFIX = "SUMMARY "


class LabeledFormatter(logging.Formatter):
    """``<LABEL> <message>``; WARNING is shortened to WARN."""

    labels = {
        logging.WARNING: "WARN",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.labels.get(record.levelno, record.levelname)
        line = f"{label} {record.getMessage()}"
        if record.exc_info and record.levelno >= logging.ERROR:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class _ConsoleHandler(logging.StreamHandler):
    """Marker type so setup/reset only ever touch the handler installed here."""


def _console_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, _ConsoleHandler)]


def setup_logging(stream: TextIO | None = None) -> logging.Logger:
    """Install the labeled console handler on the package logger.

    Calling it again is a no-op while the handler is installed (the first
    stream stays in use until reset_logging()).
    """
    logger = logging.getLogger(LOGGER_NAME)
    if _console_handlers(logger):
        return logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    handler = _ConsoleHandler(stream or sys.stdout)
    handler.setFormatter(LabeledFormatter())
    handler.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    # root 側のハンドラで二重に出さない
    logger.propagate = False
    return logger


def get_logger() -> logging.Logger:
    return setup_logging()


def set_debug(logger: logging.Logger) -> None:
    """``--debug``: let DEBUG records through the logger and its handlers."""
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers:
        h.setLevel(logging.DEBUG)
    logger.debug("debug mode enabled")


def log_summary(line: str) -> None:
    """Emit one SUMMARY line; a leading ``SUMMARY `` in ``line`` is not repeated."""
    get_logger().log(SUMMARY_LEVEL, line.removeprefix(_SUMMARY_PREFIX))


def reset_logging() -> None:
    """Detach the console handler (tests re-bind it to a captured stream)."""
    logger = logging.getLogger(LOGGER_NAME)
    for h in _console_handlers(logger):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
