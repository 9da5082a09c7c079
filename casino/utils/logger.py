"""Logging setup for the casino package."""
import logging
import sys
from typing import Optional

from casino.config import config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured: set[str] = set()


def _level_from_name(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger writing to stdout at ``config.log_level``.

    Args:
        name: Logger name, usually the calling module's ``__name__``.

    Returns:
        Logger with a single stdout handler.
    """
    name = name or "casino"
    logger = logging.getLogger(name)

    if name not in _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(_level_from_name(config.log_level))
        logger.propagate = False
        _configured.add(name)

    return logger


def set_log_level(level: str) -> None:
    """Change the level of every logger handed out so far."""
    for name in _configured:
        logging.getLogger(name).setLevel(_level_from_name(level))
