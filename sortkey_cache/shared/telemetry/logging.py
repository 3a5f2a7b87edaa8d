"""Logging configuration for the cache package."""

import logging
import sys

from sortkey_cache.core.config import get_settings

PACKAGE_LOGGER = "sortkey_cache"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int | None = None) -> logging.Logger:
    """Attach a stdout handler to the package logger.

    Level is DEBUG when settings.debug is True, otherwise INFO, unless
    level is given. Only the package logger is touched, never the root
    logger of the host application; calling twice adds no second handler.

    Returns:
        The package logger.
    """
    if level is None:
        level = logging.DEBUG if get_settings().debug else logging.INFO
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if not any(getattr(h, "_sortkey_cache", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._sortkey_cache = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
