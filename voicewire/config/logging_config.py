"""
Configure logging for the application.

This module provides a consistent logging configuration across the entire
package, ensuring log messages are formatted correctly and directed
to the appropriate outputs (console, file).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from voicewire.config.constants import LOGGER_NAME

# Log levels
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").strip().lower() in ("true", "1", "yes")

# Log file configuration
LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE = LOG_DIR / "voicewire.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def configure_logging(name: str = LOGGER_NAME, log_filename: str = "voicewire.log"):
    """
    Configure a named logger with console and file handlers.

    Args:
        name: Logger name, usually the module's short name
        log_filename: File name inside LOG_DIR for the rotating file handler

    Returns:
        logging.Logger: The configured logger instance
    """
    log_file = LOG_DIR / log_filename

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    # Remove existing handlers if any
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if LOG_TO_FILE:
        try:
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=MAX_LOG_SIZE,
                backupCount=BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except Exception as e:
            logger.warning(f"Could not set up file logging: {e}")

    # Prevent log propagation to root logger
    logger.propagate = False

    logger.debug("Logging configured")
    return logger
