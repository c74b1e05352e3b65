"""
Weekly Rhythm - Logging
One "rhythm" logger with a console handler and a size-rotated file; modules log
through children of it (rhythm.reminders, rhythm.store, ...).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from config import get_logging_config, LoggingConfig

ROOT_LOGGER = "rhythm"
DEFAULT_LOGS_DIR = os.path.join(os.path.dirname(__file__), "logs")

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_COLORS = {
    logging.DEBUG: "\x1b[38;20m",
    logging.INFO: "\x1b[34;20m",
    logging.WARNING: "\x1b[33;20m",
    logging.ERROR: "\x1b[31;20m",
    logging.CRITICAL: "\x1b[31;1m",
}
RESET = "\x1b[0m"


class ConsoleFormatter(logging.Formatter):
    """Level-coloured console lines with the call site appended."""

    def __init__(self, colors: bool = True):
        super().__init__(datefmt=DATE_FORMAT)
        line = PLAIN_FORMAT + " (%(filename)s:%(lineno)d)"
        self._by_level = {
            level: logging.Formatter(f"{color}{line}{RESET}" if colors else line, DATE_FORMAT)
            for level, color in LEVEL_COLORS.items()
        }
        self._fallback = logging.Formatter(line, DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        return self._by_level.get(record.levelno, self._fallback).format(record)


def setup_logger(name: str = ROOT_LOGGER, config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Attach console and rotating-file handlers once; later calls return the same logger."""
    cfg = config or get_logging_config()

    logger = logging.getLogger(name)
    logger.setLevel(cfg.level.upper())
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter(colors=cfg.colors))
    logger.addHandler(console_handler)

    logs_dir = cfg.directory or DEFAULT_LOGS_DIR
    os.makedirs(logs_dir, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(logs_dir, "rhythm.log"),
        maxBytes=cfg.max_bytes,
        backupCount=cfg.backup_count,
        encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


def get_logger(component: str) -> logging.Logger:
    """Child of the app logger, e.g. get_logger("reminders") -> "rhythm.reminders"."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


# Global app logger
logger = setup_logger()
