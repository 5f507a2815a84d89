# src/goaltracker_ui/log_config.py

import logging
import sys
from typing import Optional, Union

LOGGER_NAME = "goaltracker_ui"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Union[int, str, None] = None, stream=None) -> logging.Logger:
    """
    Configure the package logger with a single stream handler.

    Safe to call more than once: existing handlers are replaced, never stacked.
    Defaults to the level from settings when none is given.
    """
    if level is None:
        from .config import settings
        level = settings.LOG_LEVEL

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def mask_token(token: Optional[str]) -> str:
    """Short, log-safe rendering of a bearer or refresh token."""
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"
