"""
Logger utility for BoardForge
"""

import logging
import sys


def get_logger(name: str = None, fmt: str = None, level: str = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name:  Logger name (defaults to 'boardforge').
        fmt:   Log format string.  Defaults to the standard timestamped format.
        level: Level name such as ``"DEBUG"``; unknown names fall back to INFO.
    """
    logger = logging.getLogger(name or "boardforge")

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                fmt or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    if level:
        logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    return logger


# Default logger instance
logger = get_logger()
