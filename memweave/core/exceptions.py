"""
Exception hierarchy for memweave.

The context engine itself never raises on malformed candidates; these
exceptions belong to the configuration layer and the command-line adapter.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for monitoring and alerting."""

    # Configuration errors (1xxx)
    CONFIG_INVALID = "E1001"
    CONFIG_MISSING = "E1002"
    CONFIG_VALIDATION_FAILED = "E1003"

    # Candidate input errors (2xxx)
    CANDIDATES_NOT_FOUND = "E2001"
    CANDIDATES_INVALID = "E2002"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "E9001"


class MemweaveError(Exception):
    """
    Base exception for all memweave errors.

    Provides:
    - Error code for monitoring
    - Context for debugging
    - The wrapped cause, if any
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize memweave error.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional context for debugging
            cause: Original exception if this is a wrapped error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.error_code.value,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        """String representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# Configuration Errors
class ConfigurationError(MemweaveError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        error_code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        super().__init__(message, error_code, context, cause)


class ConfigValidationError(MemweaveError):
    """Configuration validation errors."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, ErrorCode.CONFIG_VALIDATION_FAILED, context, cause)


# Candidate Errors
class CandidateLoadError(MemweaveError):
    """A candidate file could not be read or parsed."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CANDIDATES_INVALID,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, error_code, context, cause)


__all__ = [
    "ErrorCode",
    "MemweaveError",
    "ConfigurationError",
    "ConfigValidationError",
    "CandidateLoadError",
]
