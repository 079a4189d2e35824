"""Logging setup driven by the application configuration."""

import logging
import sys
from typing import Any

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s (%(module)s.%(funcName)s:%(lineno)d): %(message)s'


def setup_logging_from_config(app_config: Any, log_to_file: bool = True) -> logging.Logger:
    """
    Sets up logging based on the provided configuration object.

    Args:
        app_config: The ``config`` instance (or anything with LOG_LEVEL,
            LOG_FILE_PATH, APP_NAME and ensure_directories()).
        log_to_file: Also write to LOG_FILE_PATH.

    Returns:
        The application's main logger.
    """
    log_level_val = getattr(logging, app_config.LOG_LEVEL.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_to_file:
        app_config.ensure_directories()
        handlers.append(logging.FileHandler(app_config.LOG_FILE_PATH, mode='a'))

    logging.basicConfig(level=log_level_val, format=LOG_FORMAT, handlers=handlers, force=True)

    logger = logging.getLogger(app_config.APP_NAME)
    target = app_config.LOG_FILE_PATH if log_to_file else "stderr"
    logger.debug(f"Logging initialized at level {app_config.LOG_LEVEL} to {target}")
    return logger
