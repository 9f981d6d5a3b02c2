"""Logging configuration using loguru.

Intercepts stdlib logging so that httpx and GitPython flow through loguru
with a unified format.  GitPython logs every git command line it runs at
DEBUG; those lines are shown only at ``log_level = "DEBUG"``, which is the
way to see exactly which clone or reset a workspace sync performed.
"""

from __future__ import annotations

import inspect
import logging
import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# httpx logs every API request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")
GIT_LOGGER = "git"


class _InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, attributed to the library call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO") -> None:
    """Route everything to a single stderr sink at ``level``.

    Called once per CLI invocation, right after settings are loaded, so the
    level honours ``TFCLEANUP_LOG_LEVEL`` / ``log_level`` in settings.toml.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger(GIT_LOGGER).setLevel(logging.DEBUG if level == "DEBUG" else logging.WARNING)

    logger.debug("Logging initialised (level={})", level)
