"""Structured logging for memweave."""

from memweave.logging.logger import (
    StructuredLogger,
    JSONFormatter,
    LogLevel,
    get_logger,
)

__all__ = [
    "StructuredLogger",
    "JSONFormatter",
    "LogLevel",
    "get_logger",
]
