"""
Logging configuration for Arbor.

Console output is colour coded per level in development and switches to one
JSON object per line when ``ARBOR_LOG_JSON`` is set.
"""

import json
import logging
import sys
from typing import Optional

from arbor.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


# ANSI color codes for terminal output
class Colors:
    GREY = "\x1b[38;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    GREEN = "\x1b[32;20m"
    RESET = "\x1b[0m"


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps each record in the colour of its level."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GREY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD_RED,
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        formatter = logging.Formatter(color + LOG_FORMAT + Colors.RESET, datefmt="%Y-%m-%d %H:%M:%S")
        return formatter.format(record)


class JsonFormatter(logging.Formatter):
    """One JSON document per record, for log aggregation."""

    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to ``ARBOR_LOG_LEVEL``, then DEBUG/INFO depending on ``debug``.
        json_format: Emit JSON lines instead of coloured text.
            Defaults to ``ARBOR_LOG_JSON``.
    """
    settings = get_settings()

    log_level = level or settings.log_level or ("DEBUG" if settings.debug else "INFO")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    if json_format is None:
        json_format = settings.log_json

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(JsonFormatter() if json_format else ColoredFormatter())
    root_logger.addHandler(console_handler)

    # Silence noisy loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger("arbor").setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Usage:
        from arbor.logging_config import get_logger
        logger = get_logger(__name__)
        logger.info("Something happened")
    """
    # Keep every app logger under the 'arbor' namespace
    if not name.startswith("arbor"):
        name = f"arbor.{name}"
    return logging.getLogger(name)
