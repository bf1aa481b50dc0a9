"""
memweave core - configuration and error hierarchy.
"""

from memweave.core.exceptions import (
    MemweaveError,
    ErrorCode,
    ConfigurationError,
    ConfigValidationError,
    CandidateLoadError,
)

from memweave.core.config import (
    MemweaveSettings,
    BudgetConfig,
    CategoryPercentages,
    SelectionConfig,
    RenderConfig,
    ObservabilityConfig,
    get_settings,
    resolve_settings,
    reset_settings,
)

__all__ = [
    # Exceptions
    "MemweaveError",
    "ErrorCode",
    "ConfigurationError",
    "ConfigValidationError",
    "CandidateLoadError",
    # Config
    "MemweaveSettings",
    "BudgetConfig",
    "CategoryPercentages",
    "SelectionConfig",
    "RenderConfig",
    "ObservabilityConfig",
    "get_settings",
    "resolve_settings",
    "reset_settings",
]
