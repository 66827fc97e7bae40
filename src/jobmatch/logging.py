"""Logging configuration for jobmatch.

Every module logs through the ``jobmatch`` logger: import ``logger``
from here, or use ``logging.getLogger(__name__)`` inside the package so
records propagate to it.  A single stderr handler is attached at import
time.

Per-user lines go through :func:`user_logger`, which prefixes each
message with ``[username]`` so one user's matching and delivery can be
grepped out of a multi-user run.

Call :func:`configure_file_logging` to also keep a timestamped run log
under ``data/logs/``, and :func:`set_verbosity` to switch stderr between
quiet, normal and debug output.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

LOGGER_NAME = "jobmatch"
DEFAULT_LOG_DIR = "data/logs"

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)

_stderr_handler = logging.StreamHandler(sys.stderr)
_stderr_handler.setLevel(logging.INFO)
_stderr_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
logger.addHandler(_stderr_handler)


class UserLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the username it concerns."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"[{self.extra['username']}] {msg}", kwargs


def user_logger(username: str) -> UserLogAdapter:
    """Logger for lines about a single user's matching or delivery."""
    return UserLogAdapter(logger, {"username": username})


def set_verbosity(verbose: int = 0, *, quiet: bool = False) -> None:
    """Adjust stderr output: ``quiet`` shows warnings only, ``verbose`` adds DEBUG."""
    if quiet:
        level = logging.WARNING
    elif verbose > 0:
        level = logging.DEBUG
    else:
        level = logging.INFO
    _stderr_handler.setLevel(level)
    if level < logger.level:
        logger.setLevel(level)


def configure_file_logging(
    log_dir: str = DEFAULT_LOG_DIR,
    *,
    level: int = logging.INFO,
) -> logging.FileHandler:
    """Add a timestamped ``jobmatch_<timestamp>.log`` file handler.

    Creates ``log_dir`` if needed and returns the handler so callers
    (or tests) can remove it again.  The stderr handler is untouched.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    file_handler = logging.FileHandler(
        str(log_path / f"jobmatch_{timestamp}.log"), encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))

    # the logger must pass records down to the most verbose handler
    if level < logger.level:
        logger.setLevel(level)

    logger.addHandler(file_handler)
    return file_handler


__all__ = [
    "DEFAULT_LOG_DIR",
    "UserLogAdapter",
    "configure_file_logging",
    "logger",
    "set_verbosity",
    "user_logger",
]
