"""
Logging module for the activity notification migration tool
"""

import json
import logging
import os
from typing import Any, Optional

LOGGER_NAME = "activity_migrator"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_RECORD_ATTRS = frozenset(
    (
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "id",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    )
)


class JsonFormatter(logging.Formatter):
    def format(self, record):
        data = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
        }
        # Include any additional attributes from the record
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS:
                data[key] = value
        return json.dumps(data, default=str)


class EnhancedFormatter(logging.Formatter):
    """
    Formatter that switches to a detailed layout in verbose mode and appends
    the migration name when a record carries one
    """

    def __init__(self, fmt=None, datefmt=None, style="%", verbose=False):
        # Use more detailed format for verbose mode
        if verbose:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(module)s:%(lineno)d] - %(message)s"
        elif not fmt:
            fmt = "%(asctime)s - %(levelname)s - %(message)s"

        super().__init__(fmt, datefmt, style)

    def format(self, record):
        result = super().format(record)

        migration = getattr(record, "migration", None)
        if migration:
            result = f"{result} [{migration}]"

        return result


def setup_main_log_file(output_dir: str) -> logging.FileHandler:
    """
    Set up a file handler for the main log file that contains non-migration-specific logs.

    Args:
        output_dir: The output directory path

    Returns:
        The file handler for the main log file
    """
    os.makedirs(output_dir, exist_ok=True)

    log_file = os.path.join(output_dir, "migration.log")

    file_handler = logging.FileHandler(log_file, mode="a")
    file_handler.setLevel(logging.DEBUG)  # Always use DEBUG level for file handlers
    file_handler.setFormatter(EnhancedFormatter())

    # Records tagged with a migration go to that migration's own file
    class MainLogFilter(logging.Filter):
        def filter(self, record):
            return not getattr(record, "migration", None)

    file_handler.addFilter(MainLogFilter())

    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(file_handler)

    logger.info(f"Main log file created at: {log_file}")
    return file_handler


def setup_logger(
    verbose: bool = False, output_dir: Optional[str] = None
) -> logging.Logger:
    """
    Set up and return the logger with appropriate formatting.

    Args:
        verbose: If True, set console handler to DEBUG level; otherwise INFO level
        output_dir: Optional output directory for the main log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Clear any existing handlers to prevent duplicate messages
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)  # Always set logger to DEBUG to capture all logs

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(EnhancedFormatter(verbose=verbose))
    logger.addHandler(console_handler)

    if output_dir:
        setup_main_log_file(output_dir)

    return logger


def setup_migration_logger(
    output_dir: str, migration: str, json_format: bool = False
) -> logging.FileHandler:
    """
    Set up a file handler that only receives records for one migration.

    Args:
        output_dir: The output directory path
        migration: The migration name
        json_format: Write one JSON object per line instead of plain text

    Returns:
        The file handler for the migration log
    """
    logs_dir = os.path.join(output_dir, "migration_logs")
    os.makedirs(logs_dir, exist_ok=True)

    log_file = os.path.join(logs_dir, f"{migration}.log")

    file_handler = logging.FileHandler(log_file, mode="a")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JsonFormatter() if json_format else EnhancedFormatter())

    class MigrationFilter(logging.Filter):
        def filter(self, record):
            return getattr(record, "migration", None) == migration

    file_handler.addFilter(MigrationFilter())

    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(file_handler)

    logger.info(f"Migration log file created at: {log_file}", extra={"migration": migration})
    return file_handler


def log_with_context(level: int, message: str, **kwargs: Any) -> None:
    """
    Log a message with additional context information.

    Args:
        level: The logging level (e.g., logging.INFO)
        message: The log message
        **kwargs: Additional context to include in the log record
    """
    # exc_info is a logging keyword, not record context
    exc_info = kwargs.pop("exc_info", None)

    # Filter out None values from kwargs
    extras = {k: v for k, v in kwargs.items() if v is not None}

    logger = logging.getLogger(LOGGER_NAME)
    logger.log(level, message, extra=extras, exc_info=exc_info)
