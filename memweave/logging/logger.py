"""Structured logging for memweave."""

import logging
import json
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from enum import Enum


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL
}


class StructuredLogger:
    """
    Structured logger for context assembly runs.

    Outputs one JSON object per record (or a plain ``key=value`` line in
    text mode) for easy parsing and analysis.
    """

    def __init__(
        self,
        name: str,
        level: LogLevel = LogLevel.INFO,
        extra_fields: Optional[Dict[str, Any]] = None,
        json_format: bool = True
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            level: Logging level
            extra_fields: Additional fields to include in all logs
            json_format: Emit JSON records; otherwise ``key=value`` text
        """
        self.name = name
        self.level = level
        self.extra_fields = extra_fields or {}
        self.json_format = json_format
        self._logger = logging.getLogger(name)
        self._configure_logger()

    def _configure_logger(self) -> None:
        """Configure the underlying logger."""
        self._logger.setLevel(_LEVEL_MAP[self.level])

        # Remove existing handlers
        self._logger.handlers = []

        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        self._logger.addHandler(handler)

    def _render(self, log_data: Dict[str, Any]) -> str:
        if self.json_format:
            return json.dumps(log_data, default=str)
        fields = " ".join(
            f"{key}={value}" for key, value in log_data.items()
            if key not in ("timestamp", "level", "logger", "message")
        )
        return f"{log_data['message']} {fields}".rstrip()

    def _log(
        self,
        level: LogLevel,
        message: str,
        **kwargs: Any
    ) -> None:
        """
        Internal logging method.

        Args:
            level: Log level
            message: Log message
            **kwargs: Additional fields
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "logger": self.name,
            "message": message,
            **self.extra_fields,
            **kwargs
        }

        self._logger.log(_LEVEL_MAP[level], self._render(log_data))

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, **kwargs)

    def log_window(
        self,
        total_items: int,
        total_tokens: int,
        budget_total: int,
        truncated: bool,
        **kwargs: Any
    ) -> None:
        """
        Log a built context window.

        Args:
            total_items: Number of items in the window
            total_tokens: Estimated tokens in the window
            budget_total: Model context size the budget was derived from
            truncated: Whether any candidate was left out
            **kwargs: Additional fields
        """
        self.info(
            "Context window built",
            total_items=total_items,
            total_tokens=total_tokens,
            budget_total=budget_total,
            truncated=truncated,
            **kwargs
        )


class JSONFormatter(logging.Formatter):
    """Formatter that passes the pre-rendered record through."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record."""
        # The message is already rendered by StructuredLogger
        return record.getMessage()


def get_logger(
    name: str,
    level: LogLevel = LogLevel.INFO,
    json_format: bool = True,
    **extra_fields: Any
) -> StructuredLogger:
    """
    Get or create a structured logger.

    Args:
        name: Logger name
        level: Logging level
        json_format: Emit JSON records
        **extra_fields: Additional fields to include in all logs

    Returns:
        Structured logger instance
    """
    return StructuredLogger(name, level, extra_fields, json_format=json_format)
