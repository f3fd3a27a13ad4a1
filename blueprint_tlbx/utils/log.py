"""Logging setup for scripts and the command line entry point."""

from __future__ import annotations

import logging


LOG_FORMAT = "%(levelname)s: %(message)s"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Install the toolbox log format on the root logger.

    Library modules only create module-level loggers; applications call this
    once at start-up.
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


__all__ = ["LOG_FORMAT", "configure_logging"]
