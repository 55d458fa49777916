"""
Logging helpers shared by the package modules.
"""

import logging
from typing import Optional, Union

PACKAGE_LOGGER = "depth_wall_detection"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger inside the package namespace."""
    if not name:
        return logging.getLogger(PACKAGE_LOGGER)
    if name.startswith(PACKAGE_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def setup_logging(level: Union[str, int] = logging.INFO,
                  fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    Configure the package logger.

    A single stream handler is attached to the package logger; calling this
    again only updates its level and format.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    handler = next((h for h in logger.handlers if getattr(h, "_depth_wall_handler", False)), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler._depth_wall_handler = True
        logger.addHandler(handler)

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))

    return logger
