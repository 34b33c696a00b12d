"""
PlanetFeed Logging Configuration
===============================

Logging for ingestion runs. Console output goes to stderr because stdout
carries the per-feed status lines; the log file is always JSON so
scheduled runs can be inspected per feed.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional


# LogRecord attributes that are not user-supplied extras
_RESERVED_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

# Context fields lifted to the top level of JSON records
_PROMOTED_FIELDS = ("component", "feed_url")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; extras are nested under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_FIELDS
        }
        for key in _PROMOTED_FIELDS:
            if key in extra_fields:
                log_data[key] = extra_fields[key]
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Short colored lines for interactive runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        # Worker thread names identify which feed worker logged the line
        formatted = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{record.threadName}: {record.getMessage()}"
        )
        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)
        return formatted


def setup_logger(
    name: str = "planetfeed",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Set up logger with a stderr console handler and a rotating JSON file.

    Args:
        name: Logger name
        level: Logging level name
        log_file: Path to log file (optional)
        console: Whether to log to stderr
        structured: JSON instead of colored lines on the console
        max_file_size: Rotate the log file after this many bytes
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Reconfiguring replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            StructuredFormatter() if structured else ColoredConsoleFormatter()
        )
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that merges its context into every record's extras."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    feed_url: Optional[str] = None,
) -> LoggerAdapter:
    """Logger adapter tagged with a component and, optionally, a feed URL."""
    extra_context: Dict[str, Any] = {"component": component_name}
    if feed_url:
        extra_context["feed_url"] = feed_url
    return LoggerAdapter(logging.getLogger(f"planetfeed.{component_name}"), extra_context)


def configure_application_logging(logging_settings, log_level: Optional[str] = None) -> None:
    """Configure the planetfeed logger tree from the logging settings section.

    Args:
        logging_settings: LoggingSettings instance
        log_level: Overrides the configured level (e.g. DEBUG for --debug)
    """
    setup_logger(
        name="planetfeed",
        level=log_level or logging_settings.level.value,
        log_file=logging_settings.file_path,
        console=logging_settings.console_logging,
        structured=logging_settings.structured_logging,
        max_file_size=logging_settings.max_file_size_mb * 1024 * 1024,
        backup_count=logging_settings.backup_count,
    )

    # HTTP and parser libraries only surface problems
    for library in ("urllib3", "requests", "feedparser"):
        logging.getLogger(library).setLevel(logging.WARNING)


class PerformanceLogger:
    """Context manager that times an operation and logs its outcome."""

    def __init__(self, logger: logging.Logger, operation: str, **kwargs):
        self.logger = logger
        self.operation = operation
        self.context = kwargs
        self.duration: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.monotonic()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration = time.monotonic() - self._started
        context = {**self.context, "duration_seconds": self.duration, "success": exc_type is None}

        if exc_type:
            self.logger.error(f"Failed {self.operation} in {self.duration:.3f}s", extra=context)
        else:
            self.logger.info(f"Completed {self.operation} in {self.duration:.3f}s", extra=context)
