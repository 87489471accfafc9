"""
Logging setup for dateseq.
Configures console logging on stderr and optional file logging with rotation.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingConfig


LOGGER_NAME = 'dateseq'


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """
    Set up logging with console and file handlers.

    stdout carries the generated dates, so console logging goes to stderr.

    Args:
        config: Logging configuration

    Returns:
        Root logger for the application
    """
    # Get numeric level
    level = getattr(logging, config.level.upper(), logging.WARNING)

    # Create formatter
    formatter = logging.Formatter(config.format)

    # Get root logger
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler with rotation
    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger."""
    return logging.getLogger(f'{LOGGER_NAME}.{name}')
