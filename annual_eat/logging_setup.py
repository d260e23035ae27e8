"""Logging for the ``annual_eat`` package.

Library modules only call ``get_logger(__name__)``. Output is switched on by
an entrypoint (the CLI root callback, which also covers ``serve``) through
``configure_logging``; until then the package logger carries a
``NullHandler`` and stays silent.

Whether logging has been configured is read off the package logger itself
(its ``_PackageHandler``), so tests can reset it by clearing handlers.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "annual_eat"
LEVEL_ENV_VAR = "ANNUAL_EAT_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


class _PackageHandler(logging.StreamHandler):
    """Stream handler installed by :func:`configure_logging`."""


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` into a numeric logging level.

    ``None`` defers to ``ANNUAL_EAT_LOG_LEVEL``. Names are case-insensitive,
    numeric strings are accepted, anything unrecognised means INFO.
    """

    if level is None:
        level = os.environ.get(LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def is_configured() -> bool:
    return any(isinstance(h, _PackageHandler) for h in logging.getLogger(PACKAGE_LOGGER).handlers)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Send ``annual_eat.*`` records to ``stream``. Later calls do nothing."""

    if is_configured():
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    handler = _PackageHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolve_level(level))
    # uvicorn configures the root logger too; keep records from printing twice.
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
