"""Logging for rsubprocess.

Every logger lives under the ``rsubprocess`` namespace. As a library the
package only attaches a ``NullHandler``; ``configure_logging`` (used by the
CLI) installs a single stderr handler on the package logger and leaves the
root logger and other libraries alone.
"""

from __future__ import annotations

import logging
import sys
from typing import Final

PACKAGE_LOGGER: Final[str] = "rsubprocess"
DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


class _HarnessHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def configure_logging(level: str | int = "INFO", fmt: str | None = None) -> logging.Logger:
    """Send rsubprocess log records to stderr.

    Calling it again replaces the previous handler rather than adding another.

    Args:
        level: Level name (e.g., "INFO", "DEBUG") or number. Unknown names
            fall back to INFO.
        fmt: Optional format string. Defaults to a pipe-separated format.

    Returns:
        The package logger.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        if isinstance(existing, _HarnessHandler):
            logger.removeHandler(existing)
    handler = _HarnessHandler()
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(_normalize_level(level))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace."""

    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def _normalize_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO
