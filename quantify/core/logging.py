"""
Logging setup shared by the API process and scripts.

- Console: stdout, configured level
- File: optional, daily rotation (TimedRotatingFileHandler)

Usage:
    from quantify.core.logging import setup_logging
    setup_logging("api")
    logger = logging.getLogger(__name__)
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7

# Loggers that are too chatty at INFO
NOISY_LOGGERS = [
    "pymongo",
    "motor",
    "httpcore",
    "httpx",
    "asyncio",
]


def setup_logging(
    process_name: str,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the root logger.

    Existing handlers are removed so repeated calls (reloads, tests) do not
    duplicate output.

    Args:
        process_name: Name reported in the startup line (e.g. "api")
        level: Level for every handler, as int or level name
        log_file: Path of a daily-rotated log file; console only when None

    Returns:
        The configured root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=path,
            when="midnight",
            interval=1,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialised for %s (level=%s, file=%s)",
        process_name,
        logging.getLevelName(level),
        log_file or "-",
    )
    return root_logger
