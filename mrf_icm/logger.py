"""
Logging setup for mrf_icm.

Modules log through logging.getLogger(__name__), under the "mrf_icm"
namespace. configure_logging attaches handlers to that namespace once;
repeated calls only update levels.
"""

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union


LOGGER_NAME = "mrf_icm"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def make_file_handler(
    log_path: Union[str, Path],
    level: int,
    when: str = "midnight",
    backup_count: int = 7
) -> TimedRotatingFileHandler:
    """
    Create a daily-rotating file handler with the package format.

    The file is opened on first emit.
    """
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(path),
        when=when,
        backupCount=backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """
    Attach a console handler (and optionally a file handler) to the package logger.

    Args:
        level: Logging level for the logger and its handlers
        log_file: Optional path of a rotating log file

    Returns:
        The "mrf_icm" logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not any(getattr(h, '_mrf_console', False) for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        console._mrf_console = True
        logger.addHandler(console)

    if log_file is not None:
        target = os.path.abspath(log_file)
        has_file = any(
            isinstance(h, TimedRotatingFileHandler) and h.baseFilename == target
            for h in logger.handlers
        )
        if not has_file:
            logger.addHandler(make_file_handler(log_file, level))

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger
