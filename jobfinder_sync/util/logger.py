"""Logging utility for the sync layer."""

import logging
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = "jobfinder_sync"


def get_logger(name: Optional[str] = None, level: Union[int, str, None] = None) -> logging.Logger:
    """Get a configured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module
        level: Optional level applied when the logger is first configured

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name or ROOT_LOGGER_NAME)

    # Only configure if no handlers exist
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level or logging.INFO)
        # Avoid printing twice when the application configures the root logger
        logger.propagate = False

    return logger


def set_log_level(level: Union[int, str]) -> None:
    """Apply a level to every logger created under the package namespace."""
    if isinstance(level, str):
        level = level.upper()
    for name in list(logging.root.manager.loggerDict):
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
            logging.getLogger(name).setLevel(level)
