"""Centralized logging configuration for the ``expense_tracker`` package.

- ``configure_logging(...)``: attach exactly one handler to the package root
  logger (``"expense_tracker"``). Called once by the CLI at startup. The
  interactive loop shares the terminal with log output, so the default level
  is ``WARNING`` and records can be diverted to a file instead of stderr.
- ``get_logger(name)``: acquire a child logger; until configuration runs the
  package logger carries a ``NullHandler`` so library use stays silent.

Library modules never attach handlers themselves.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import IO

_PKG_LOGGER_NAME = "expense_tracker"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv("EXPENSE_TRACKER_LOG_LEVEL")
        if not level:
            return logging.WARNING
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.WARNING


def configure_logging(
    level: int | str | None = None,
    *,
    log_file: str | os.PathLike[str] | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` falls back to
        ``EXPENSE_TRACKER_LOG_LEVEL`` and then ``WARNING``.
    log_file:
        Optional path for a ``FileHandler``. ``None`` falls back to
        ``EXPENSE_TRACKER_LOG_FILE``; when neither is set, records go to
        ``stream`` (default ``sys.stderr``).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    target = log_file or os.getenv("EXPENSE_TRACKER_LOG_FILE")
    handler: logging.Handler
    if target:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))

    resolved = _parse_level(level)
    handler.setLevel(resolved)
    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with a silent default for library use."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
