"""
Logging utility with loguru.
Provides structured logging with file rotation.
"""

import sys
from typing import Optional

from loguru import logger

from qase_analytics.config.settings import settings


def setup_logger(level: Optional[str] = None, to_file: bool = True):
    """
    Configure loguru logger with console and (optionally) file outputs.

    Called once by whoever boots the engine; library modules only do
    ``from loguru import logger``.
    """
    logger.remove()

    logger.add(
        sys.stdout,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=(level or settings.log_level).upper(),
    )

    if to_file:
        log_dir = settings.log_dir_resolved
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "qase_analytics.log",
            rotation="10 MB",
            retention="1 week",
            compression="zip",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
        )

    logger.info("Logger initialized")
    return logger
