"""
Logging setup for the call bridge.

Everything logs under the ``clinicvoice`` logger: one stdout handler, plus a
size-rotated file under ``LOG_DIR`` unless ``LOG_TO_FILE`` is switched off.
Per-call log lines carry the session id in their message text.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from clinicvoice.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "clinicvoice.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

# Chatty third-party loggers, capped at WARNING
QUIET_LOGGERS = ("websockets", "sqlalchemy.engine", "twilio.http_client")


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def _file_handler(formatter: logging.Formatter) -> RotatingFileHandler:
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(level: Optional[str] = None):
    """
    Configure the ``clinicvoice`` logger.

    Safe to call repeatedly: existing handlers are replaced, not stacked.

    Args:
        level: Level name; falls back to the LOG_LEVEL environment variable

    Returns:
        logging.Logger: The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_resolve_level(level))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if os.getenv("LOG_TO_FILE", "true").lower() != "false":
        try:
            logger.addHandler(_file_handler(formatter))
        except OSError as e:
            logger.warning(f"File logging disabled: {e}")

    logger.propagate = False
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging configured")
    return logger
