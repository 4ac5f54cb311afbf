"""
Logging configuration for the event gateway.

This module provides centralized logging configuration: console output in
text or JSON, and an optional rotating JSON file that receives one record
per route outcome.
"""

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional


OUTCOME_LOGGER_NAME = "eventgate.outcomes"
LOG_FILE_NAME = "eventgate.log"
PRODUCTION_LOG_DIRECTORY = "/var/log/eventgate"

# Root logger first; all of them write to the console handler
CONSOLE_LOGGERS = ("", "uvicorn", "uvicorn.error", "fastapi", "eventgate")


def get_logging_config(
    log_level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
    log_file_max_bytes: int = 1048576,
    log_file_backup_count: int = 3,
    enable_access_log: bool = True
) -> Dict[str, Any]:
    """
    Get logging configuration dictionary.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Console log format ('json' or 'text')
        log_file: Optional path of the rotating outcome log
        log_file_max_bytes: Size at which the outcome log rotates
        log_file_backup_count: Number of rotated files to keep
        enable_access_log: Whether to enable HTTP access logging

    Returns:
        Logging configuration dictionary
    """
    formatters = {
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S"
        },
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(module)s %(lineno)d %(message)s"
        },
        "outcome": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(levelname)s %(message)s"
        }
    }

    formatter_name = "json" if log_format == "json" else "detailed"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter_name,
            "stream": sys.stdout
        }
    }

    if log_file:
        handlers["outcome_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "outcome",
            "filename": log_file,
            "maxBytes": log_file_max_bytes,
            "backupCount": log_file_backup_count,
            "encoding": "utf8"
        }
    else:
        handlers["outcome_file"] = {
            "class": "logging.NullHandler"
        }

    console_logger = {"level": log_level, "handlers": ["console"], "propagate": False}
    loggers: Dict[str, Dict[str, Any]] = {
        name: dict(console_logger) for name in CONSOLE_LOGGERS
    }
    loggers[OUTCOME_LOGGER_NAME] = {
        "level": "INFO",
        "handlers": ["outcome_file"],
        "propagate": False
    }

    if enable_access_log:
        loggers["uvicorn.access"] = dict(console_logger, level="INFO")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": loggers
    }


def resolve_log_directory(
    test_mode: bool = False,
    log_directory: Optional[str] = None,
    base_dir: Optional[Path] = None
) -> Optional[Path]:
    """
    Pick and create the directory for the outcome log.

    Test mode always uses ``logs/test``. Otherwise an explicit directory
    wins, then the production path if it is writable, then ``logs``.

    Returns:
        The directory, or None if it could not be created
    """
    base = base_dir or Path.cwd()

    if test_mode:
        directory = base / "logs" / "test"
    elif log_directory:
        directory = Path(log_directory)
    else:
        directory = Path(PRODUCTION_LOG_DIRECTORY)
        if not _is_writable_directory(directory):
            directory = base / "logs"

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logging.getLogger(__name__).warning(f"Failed to create log directory {directory}: {e}")
        return None

    return directory


def _is_writable_directory(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return os.access(directory, os.W_OK)


def setup_logging(settings) -> Optional[Path]:
    """
    Setup logging configuration from gateway settings.

    Args:
        settings: Loaded ``Settings`` instance

    Returns:
        Path of the outcome log file, or None when file logging is off
    """
    log_level = "DEBUG" if settings.debug_logging else settings.log_level.upper()

    log_file: Optional[Path] = None
    if settings.file_logging_enabled or settings.test_mode:
        directory = resolve_log_directory(
            test_mode=settings.test_mode,
            log_directory=settings.log_directory
        )
        if directory is not None:
            log_file = directory / LOG_FILE_NAME

    config = get_logging_config(
        log_level=log_level,
        log_format=settings.log_format,
        log_file=str(log_file) if log_file else None,
        log_file_max_bytes=settings.file_log_max_size,
        log_file_backup_count=settings.file_log_max_files,
        enable_access_log=settings.debug_logging
    )
    logging.config.dictConfig(config)

    logger = get_logger(__name__)
    if log_file:
        logger.info(f"File logging initialized: {log_file}")
    else:
        logger.info("File logging disabled")

    return log_file


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class StructuredLogger:
    """
    Structured logger for consistent log message formatting.

    This class provides methods for logging structured data with
    consistent field names and formats.
    """

    def __init__(self, name: str):
        """Initialize structured logger.

        Args:
            name: Logger name
        """
        self.logger = get_logger(name)

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        response_time: float,
        client_ip: str = None,
        user_agent: str = None,
        **kwargs
    ):
        """Log HTTP request information.

        Args:
            method: HTTP method
            path: Request path
            status_code: Response status code
            response_time: Response time in milliseconds
            client_ip: Client IP address
            user_agent: User agent string
            **kwargs: Additional fields to log
        """
        log_data = {
            "event": "http_request",
            "method": method,
            "path": path,
            "status_code": status_code,
            "response_time_ms": response_time,
        }

        if client_ip:
            log_data["client_ip"] = client_ip
        if user_agent:
            log_data["user_agent"] = user_agent

        log_data.update(kwargs)

        if status_code >= 500:
            self.logger.error("HTTP request", extra=log_data)
        elif status_code >= 400:
            self.logger.warning("HTTP request", extra=log_data)
        else:
            self.logger.info("HTTP request", extra=log_data)

    def log_outcome(self, record: Dict[str, Any]):
        """Log one route outcome record.

        Args:
            record: Flat dictionary produced by ``OutcomeRecord.to_dict``
        """
        self.logger.info("request_outcome", extra=record)

    def debug(self, message: str, **kwargs):
        """Log debug message with structured data."""
        self.logger.debug(message, extra=kwargs)
