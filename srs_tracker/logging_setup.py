"""
Loguru sink configuration.

Library code only calls `logger.*`; entry points call configure_logging()
once to decide where records go.
"""

from __future__ import annotations

import sys

from loguru import logger

from config import Settings, get_settings

STDERR_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Settings | None = None, level: str | None = None) -> None:
    """
    Replace loguru's default sink with the configured ones.

    Args:
        settings: Settings to read log_level / log_file from
        level: Override for the stderr level (e.g. from a --verbose flag)
    """
    settings = settings or get_settings()
    stderr_level = level or settings.log_level

    logger.remove()
    logger.add(sys.stderr, level=stderr_level, format=STDERR_FORMAT)

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
