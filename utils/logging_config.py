"""
Loguru configuration shared by the CLI and the long-running worker.
"""
import sys
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Replace loguru's default sink with the crawler's console (and optional file) sinks."""
    level = (level or "INFO").upper()
    logger.remove()
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level)
    if log_file:
        logger.add(log_file, format=FILE_FORMAT, level=level,
                   rotation="1 day", retention="7 days", enqueue=True)
    logger.debug(f"Logging configured at level {level}")
