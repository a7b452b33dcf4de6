"""Logging setup for Pangea: one stderr handler, ``pangea.<area>`` loggers."""

import logging
import sys
from typing import Optional, Union

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO, format_string: Optional[str] = None) -> logging.Logger:
    """
    Install the stderr handler and set the level of the ``pangea`` logger.

    Args:
        level: Logging level or level name (default: INFO)
        format_string: Custom format string (optional)

    Returns:
        The ``pangea`` logger
    """
    logging.basicConfig(
        format=format_string or LOG_FORMAT,
        stream=sys.stderr,
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    return set_log_level(level)


def parse_level(level: Union[int, str]) -> int:
    """Turn a level name such as ``"debug"`` into its logging constant."""
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    name = str(level).upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{level}'; expected one of: {', '.join(LOG_LEVELS)}")
    return getattr(logging, name)


def set_log_level(level: Union[int, str]) -> logging.Logger:
    """Set the level shared by every ``pangea.*`` logger."""
    logger = logging.getLogger("pangea")
    logger.setLevel(parse_level(level))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(f"pangea.{name}")
