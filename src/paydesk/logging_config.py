"""
Logging Configuration
Sets up file-based logging with separate log files for the app, the transfer
flow and the bank REST client.
"""

import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

APP_LOGGER = "paydesk.app"
TRANSFER_LOGGER = "paydesk.transfer"
BANK_CLIENT_LOGGER = "paydesk.bank_client"

# Log format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Max log file size (10MB)
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


def setup_file_logger(name: str, log_file: Path, level: int = logging.INFO) -> logging.Logger:
    """
    Set up a file-based logger with rotation

    Args:
        name: Logger name
        log_file: Path to log file
        level: Logging level

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    # Only warnings and errors reach the console
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def setup_logging(log_dir: Optional[str] = None, log_level: str = "INFO") -> Path:
    """
    Set up all PayDesk loggers and return the directory holding the log files.
    """
    directory = Path(log_dir or "logs")
    directory.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, log_level.upper(), logging.INFO)

    setup_file_logger(APP_LOGGER, directory / "app.log", level)
    setup_file_logger(TRANSFER_LOGGER, directory / "transfer.log", level)
    setup_file_logger(BANK_CLIENT_LOGGER, directory / "bank_client.log", level)

    logging.getLogger(APP_LOGGER).info("Logging configured. Log files in: %s", directory)
    return directory


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance (creates if doesn't exist)
    """
    return logging.getLogger(name)
