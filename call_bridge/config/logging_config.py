"""
Logging setup for the call bridge.

Every module logs through the single ``call_bridge`` logger. Records go to stdout
and, unless disabled with ``LOG_FILE=""``, to a size-rotated file. Call logs are
interleaved across concurrent calls, so messages carry the stream id themselves.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from call_bridge.config.constants import LOGGER_NAME

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = os.getenv("LOG_FILE", str(Path("logs") / "call_bridge.log"))
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

# Client libraries whose per-frame debug output drowns the call logs
QUIET_LOGGERS = ("websockets", "urllib3")


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT)


def configure_logging(level: str = LOG_LEVEL, log_file: Optional[str] = LOG_FILE) -> logging.Logger:
    """
    Configure the ``call_bridge`` logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Rotating log file path, or a falsy value for stdout only

    Returns:
        logging.Logger: The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    # Reconfiguring replaces handlers rather than stacking them
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = _file_handler(log_file)
        except OSError as e:
            logger.warning(f"Could not set up file logging at {log_file}: {e}")
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Logging configured at {logging.getLevelName(logger.level)}")
    return logger
