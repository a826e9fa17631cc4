"""
Logging for the import pipeline (loguru).

Records carry a "source" extra naming the file being imported; importers bind
it with import_logger(). Records logged outside an import show "-".
"""

import os
import sys
from pathlib import Path

from loguru import logger

from lore_pipeline.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[source]}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[source]} | {name}:{function}:{line} - {message}"


def import_logger(source: str):
    """Logger bound to one import source label (e.g. "year 1900", "rivers/low")."""
    return logger.bind(source=source)


def setup_logging(level: str | None = None, log_file: Path | None = None) -> None:
    """
    Configure console logging, plus a rotated file log when one is set.

    Args:
        level: Log level; defaults to LOG_LEVEL
        log_file: Log file path; defaults to LOG_FILE (unset = console only)
    """
    level = (level or settings.pipeline.log_level).upper()
    log_file = log_file or settings.pipeline.log_file

    logger.remove()
    logger.configure(extra={"source": "-"})
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="1 week",
            compression="gz",
        )

    logger.debug(f"Logging configured: level={level}, file={log_file or '-'}")


if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
