"""Logging configuration for AVLMap."""

import logging
import os
import sys
from logging.config import dictConfig

_FORMAT      = "%(levelname)s %(asctime)s [%(filename)s:%(lineno)d] %(message)s"
_DATE_FORMAT = "%m-%d %H:%M:%S"

PACKAGE_LOGGER = "AVLMap"


def _get_default_logging_level() -> str:
    """Get logging level from environment variable or default to WARNING"""
    return os.getenv("AVLMAP_LOGGING_LEVEL", "WARNING").upper()


def _should_use_color() -> bool:
    """Determine if colored output should be used"""
    if os.getenv("NO_COLOR"):
        return False

    color_setting = os.getenv("AVLMAP_LOGGING_COLOR", "auto")
    if color_setting == "0" or color_setting.lower() == "false":
        return False
    if color_setting == "1" or color_setting.lower() == "true":
        return True

    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


class ColoredFormatter(logging.Formatter):
    """Colored log formatter"""

    COLORS = {
        'DEBUG':    '\033[36m',
        'INFO':     '\033[32m',
        'WARNING':  '\033[33m',
        'ERROR':    '\033[31m',
        'CRITICAL': '\033[1;31m',
    }
    RESET = '\033[0m'

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"
        return super().format(record)


DEFAULT_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": _FORMAT,
            "datefmt": _DATE_FORMAT,
        },
        "colored": {
            "()": ColoredFormatter,
            "format": _FORMAT,
            "datefmt": _DATE_FORMAT,
        },
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "colored" if _should_use_color() else "default",
            "level": _get_default_logging_level(),
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        PACKAGE_LOGGER: {
            "handlers": ["default"],
            "level": _get_default_logging_level(),
            "propagate": False,
        },
    },
}


def init_logger(name: str) -> logging.Logger:
    """Initialize and return a logger with the given name

    Args:
        name: Name of the logger (typically __name__)

    Returns:
        Logger instance under the AVLMap package logger
    """
    return logging.getLogger(name)


def set_logging_level(level) -> None:
    """Set the logging level for all AVLMap loggers

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL) as string or int
    """
    if hasattr(level, 'upper'):
        level = level.upper()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def _package_loggers():
    yield logging.getLogger(PACKAGE_LOGGER)
    # module loggers hand records to the package handlers directly
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(PACKAGE_LOGGER + "."):
            yield logging.getLogger(name)


def disable_logging() -> None:
    """Disable all AVLMap logging"""
    for logger in _package_loggers():
        logger.disabled = True


def enable_logging() -> None:
    """Enable AVLMap logging"""
    for logger in _package_loggers():
        logger.disabled = False


dictConfig(DEFAULT_LOGGING_CONFIG)

logger = init_logger(__name__)
