"""Logging setup for the command line entry point."""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# boto's own loggers are noisy at DEBUG and would echo request details.
_QUIET_LOGGERS = ("boto3", "botocore", "urllib3")


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr at ``level``."""

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


__all__ = ["configure_logging"]
