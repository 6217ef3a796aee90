"""
Logging setup for the live streamer.

Console output always; a rotating JSON log file when a log path is
configured.
"""

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

from live_streamer.config import LogConfig

LOG_FILE_NAME = "live_streamer.log"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Formats log records as JSON with timestamp, level, message, and extra fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(config: LogConfig, level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger.

    Args:
        config: Logging configuration
        level: Optional level overriding the configured one

    Returns:
        The configured root logger
    """
    log_level = getattr(logging, (level or config.level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root.addHandler(console_handler)

    if config.path:
        try:
            os.makedirs(config.path, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(config.path, LOG_FILE_NAME),
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(JsonFormatter())
            root.addHandler(file_handler)
        except OSError as e:
            root.warning(f"Could not create log file: {e}. Logging to console only.")

    return root
