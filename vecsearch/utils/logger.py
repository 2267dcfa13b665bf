"""
Logging helpers shared by every vecsearch module.

Loggers are named after their module (``vecsearch.index.search_index``) and
are configured once; level and format come from settings, and a log file
can be requested per logger or globally through ``LOG_FILE``.
"""

import logging
import sys
from typing import Optional

from vecsearch.config.settings import settings


def _resolve_level(level: Optional[str]) -> int:
    name = (level or settings.LOG_LEVEL).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {name}")
    return resolved


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
    logger.addHandler(handler)


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure a vecsearch logger.

    Handlers are attached only on the first call for a given name; later
    calls just update the level.

    Args:
        name: Logger name (typically __name__)
        level: Level name; defaults to ``settings.LOG_LEVEL``
        log_file: File name under ``settings.LOGS_DIR``; defaults to
            ``settings.LOG_FILE``

    Returns:
        The configured logger

    Raises:
        ValueError: If the level name is unknown
    """
    logger = logging.getLogger(name)
    log_level = _resolve_level(level)
    logger.setLevel(log_level)

    if logger.handlers:
        return logger

    _attach(logger, logging.StreamHandler(sys.stdout), log_level)

    log_file = log_file or settings.LOG_FILE
    if log_file:
        settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        _attach(logger, logging.FileHandler(settings.LOGS_DIR / log_file), log_level)

    return logger


def get_logger(name: str, log_file: Optional[str] = None) -> logging.Logger:
    """Return the logger for ``name``, configuring it on first use."""
    return setup_logger(name, log_file=log_file)


class LoggerMixin:
    """Gives a class a ``logger`` named ``<module>.<ClassName>``."""

    @property
    def logger(self) -> logging.Logger:
        logger = self.__dict__.get("_logger")
        if logger is None:
            cls = type(self)
            logger = get_logger(f"{cls.__module__}.{cls.__name__}")
            self.__dict__["_logger"] = logger
        return logger
