"""
Logging Configuration
=====================

Package-wide logging for ecoaudio. All modules log beneath the ``ecoaudio``
logger, which writes to stderr so that command output on stdout stays
machine readable.

Usage:
    from ecoaudio.core.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Spectrogram built")
"""

import logging
import sys
from typing import Optional, Union

PACKAGE_NAME = "ecoaudio"
LOG_FORMAT = "%(levelname)s - %(name)s - %(message)s"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the specified module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A Logger that inherits the package handler
    """
    _ensure_configured()
    return logging.getLogger(name)


def _ensure_configured() -> None:
    global _configured
    if _configured:
        return

    logger = logging.getLogger(PACKAGE_NAME)
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.propagate = False
    _configured = True


def _to_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown logging level: {level}")
    return value


def set_level(level: Union[int, str]) -> None:
    """
    Set the logging level for the ecoaudio package.

    Args:
        level: Logging level, either numeric (logging.DEBUG) or a name ("debug")
    """
    _ensure_configured()
    logging.getLogger(PACKAGE_NAME).setLevel(_to_level(level))


def configure_from_config(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Apply the ``[logging]`` section of a configuration file.

    Args:
        level: Level name such as "INFO" or "DEBUG"
        fmt: Replacement format string for the package handler
    """
    _ensure_configured()
    logger = logging.getLogger(PACKAGE_NAME)
    if level:
        logger.setLevel(_to_level(level))
    if fmt:
        for handler in logger.handlers:
            handler.setFormatter(logging.Formatter(fmt))
