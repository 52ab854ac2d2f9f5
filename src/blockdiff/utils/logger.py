"""Minimal logging utilities for blockdiff.

Provides a simple get_logger function that wraps the standard library logging.

Example:
    >>> from blockdiff.utils.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Loading project")
"""

from __future__ import annotations

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given name.

    Returns a standard library logger with the "blockdiff." prefix.

    Args:
        name: Logger name (typically __name__)

    Returns:
        logging.Logger instance

    Example:
        >>> logger = get_logger("mymodule")
        >>> logger.name
        'blockdiff.mymodule'
    """
    if not (name == "blockdiff" or name.startswith("blockdiff.")):
        name = f"blockdiff.{name}"
    return logging.getLogger(name)
