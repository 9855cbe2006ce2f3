"""Structured logging setup for the breadth index system."""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from breadth_index.core.constants import LOGS_DIR

# LogRecord attributes that are not user-supplied context
_RESERVED_ATTRS = frozenset(
    (
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
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    )
)

CONTEXT_KEYS = ("instrument", "source", "indicator_set", "step", "attempt")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with colors."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%H:%M:%S")
        message = f"{color}[{timestamp}] {record.levelname:8}{self.RESET} {record.getMessage()}"

        extras = []
        for key in CONTEXT_KEYS:
            if hasattr(record, key):
                extras.append(f"{key}={getattr(record, key)}")
        if extras:
            message += f" ({', '.join(extras)})"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logger(
    name: str = "breadth_index",
    level: int = logging.INFO,
    log_file: bool = True,
    console: bool = True,
    logs_dir: Path = LOGS_DIR,
) -> logging.Logger:
    """Set up a logger with JSON file and console handlers.

    Args:
        name: Logger name
        level: Logging level
        log_file: Whether to log to file
        console: Whether to log to console
        logs_dir: Directory for the JSON-lines log file

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(console_handler)

    if log_file:
        logs_dir.mkdir(parents=True, exist_ok=True)
        date_str = datetime.now().strftime("%Y%m%d")
        log_path = logs_dir / f"breadth_index_{date_str}.jsonl"

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "breadth_index") -> logging.Logger:
    """Get a module logger.

    Module loggers (``breadth_index.*``) propagate to the package logger
    configured by :func:`setup_logger`, so they get no handlers of their own.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_step(logger: logging.Logger, step: str, status: str = "start", **extra: Any) -> None:
    """Log a pipeline step.

    Args:
        logger: Logger instance
        step: Step name
        status: Step status ('start', 'complete', 'error')
        **extra: Additional context
    """
    extra["step"] = step
    extra["status"] = status

    if status == "start":
        logger.info(f"Starting {step}", extra=extra)
    elif status == "complete":
        logger.info(f"Completed {step}", extra=extra)
    elif status == "error":
        logger.error(f"Error in {step}", extra=extra)
    else:
        logger.info(f"{step}: {status}", extra=extra)
