"""Logging setup shared by every archivist module.

Modules get their logger with::

    from archivist.log import get_logger
    logger = get_logger(__name__)

Only the CLI entry point calls configure_logging(); library code never
installs handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: int = logging.WARNING,
    fmt: str = DEFAULT_FORMAT,
    stream: TextIO = sys.stderr,
) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; the handler is only added the first time,
    later calls just change the level.
    """
    root = logging.getLogger()
    if not any(getattr(h, "_archivist", False) for h in root.handlers):
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt))
        handler._archivist = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for *name* (normally ``__name__``)."""
    return logging.getLogger(name)
