"""Centralized logging configuration for the ``pnl_rollup`` package.

- ``configure_logging(...)`` attaches one ``StreamHandler`` to the package root
  logger (``"pnl_rollup"``). Entry points (the CLI, a host web app) call it
  once at startup.
- ``get_logger(name)`` returns a child logger and makes sure the package root
  has a ``NullHandler`` until an application configures output, so library use
  stays silent.

Library modules never attach handlers themselves.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PKG_LOGGER_NAME = "pnl_rollup"
LOG_LEVEL_ENV = "PNL_ROLLUP_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured_handler: logging.Handler | None = None


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        logging.Handler.__init__(self)

    @property
    def stream(self) -> IO[str]:  # type: ignore[override]
        return sys.stderr


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV)
        if not level:
            return logging.INFO
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure the package root logger; repeated calls only adjust the level.

    ``level`` accepts an ``int`` or a level name. When ``None`` it is read from
    ``PNL_ROLLUP_LOG_LEVEL`` and defaults to ``INFO``.
    """

    global _configured_handler
    logger = logging.getLogger(PKG_LOGGER_NAME)
    resolved = _parse_level(level)

    if _configured_handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        handler = logging.StreamHandler(stream) if stream is not None else _StderrHandler()
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
        logger.addHandler(handler)
        # Avoid double emission via the root logger.
        logger.propagate = False
        _configured_handler = handler

    _configured_handler.setLevel(resolved)
    logger.setLevel(resolved)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with a silent default for library use."""

    pkg_logger = logging.getLogger(PKG_LOGGER_NAME)
    if _configured_handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "PKG_LOGGER_NAME", "LOG_LEVEL_ENV"]
