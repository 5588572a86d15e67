"""Logging configuration."""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the package logger with a single stderr handler.

    Calling it again only changes the level.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
    """
    global _configured

    package_logger = logging.getLogger("entity_graph")
    package_logger.setLevel(level.upper())

    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    _configured = True
