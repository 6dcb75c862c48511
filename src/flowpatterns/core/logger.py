"""Logging utilities for workflow scripts."""

import logging
import sys
from typing import Optional, Union


def get_logger(
    name: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """Get a logger that writes to stdout.

    Args:
        name: Logger name (defaults to the package logger)
        level: Logging level, as an int or a name such as "DEBUG"

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name or "flowpatterns")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
    return logger
