"""
Logging setup for the bridge.

Everything logs under the ``voicebridge`` logger: to stdout always, and to a size-rotated
file under ``logs/`` unless file logging is turned off. The level comes from
``Settings.log_level`` (or the ``--log-level`` flag of run.py); this module reads no
environment of its own.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from voicebridge.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_FILE = Path("logs") / "voicebridge.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def configure_logging(level: str = "INFO", log_file: Optional[Path] = LOG_FILE) -> logging.Logger:
    """
    Configure the bridge logger.

    Calling it again replaces the handlers instead of stacking them, so the level
    can be changed after settings are loaded.

    Args:
        level: Level name, case-insensitive; unknown names fall back to INFO
        log_file: Rotating log file, or None for console-only logging

    Returns:
        logging.Logger: The configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(log_file, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not set up file logging at {log_file}: {e}")

    # Bridge records stay out of uvicorn's root handlers
    logger.propagate = False

    logger.debug(f"Logging configured at {logging.getLevelName(logger.level)}")
    return logger
