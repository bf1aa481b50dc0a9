"""
Configuration management for memweave.

Features:
- Type-safe configuration with validation
- Environment-based configuration (MEMWEAVE_ prefix, nested with "__")
- Optional YAML configuration file
- Cached global settings with a reset hook for tests
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
import yaml
from functools import lru_cache
import logging

from memweave.core.exceptions import ConfigurationError, ConfigValidationError, ErrorCode, MemweaveError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "memweave.yaml"


class CategoryPercentages(BaseModel):
    """Share of the available tokens given to each content category."""

    recent_messages: float = Field(0.4, ge=0, le=1, description="Conversation share")
    memories: float = Field(0.3, ge=0, le=1, description="Long-term memory share")
    learnings: float = Field(0.2, ge=0, le=1, description="Learning share")
    entities: float = Field(0.1, ge=0, le=1, description="Entity share")

    @model_validator(mode="after")
    def validate_total(self) -> "CategoryPercentages":
        total = self.recent_messages + self.memories + self.learnings + self.entities
        if total > 1.0 + 1e-9:
            raise ValueError(f"Category percentages must sum to at most 1.0, got {total:.3f}")
        return self


class BudgetConfig(BaseModel):
    """Budget allocation configuration."""

    default_context_size: int = Field(128000, ge=0, description="Context size used when none is given")
    system_prompt_reserve: int = Field(2000, ge=0, description="Tokens held back for the system prompt")
    safety_reserve: int = Field(4000, ge=0, description="Tokens held back for user input and response")
    percentages: CategoryPercentages = Field(default_factory=CategoryPercentages)


class SelectionConfig(BaseModel):
    """Selection scoring configuration."""

    importance_weight: float = Field(0.7, ge=0, le=1, description="Weight of stored importance")
    recency_weight: float = Field(0.3, ge=0, le=1, description="Weight of recency")
    recency_decay_days: float = Field(30.0, gt=0, description="Exponential recency decay constant in days")


class RenderConfig(BaseModel):
    """Window assembly and rendering configuration."""

    use_lost_in_middle_fix: bool = Field(True, description="Arrange items for lost-in-the-middle")
    estimator: str = Field("simple", description="Token estimator (simple/accurate)")
    group_by_type: bool = Field(True, description="Render grouped sections by default")
    include_metadata: bool = Field(False, description="Append category and importance to lines")

    @field_validator("estimator")
    @classmethod
    def validate_estimator(cls, v):
        allowed = ["simple", "accurate"]
        if v.lower() not in allowed:
            raise ValueError(f"Estimator must be one of {allowed}")
        return v.lower()


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("json", description="Log format (json/text)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        allowed = ["json", "text"]
        if v.lower() not in allowed:
            raise ValueError(f"Log format must be one of {allowed}")
        return v.lower()


class MemweaveSettings(BaseSettings):
    """
    Main memweave configuration.

    Loads configuration from:
    1. Configuration file (memweave.yaml, highest priority)
    2. Environment variables
    3. Defaults (lowest priority)

    Example:
        MEMWEAVE_BUDGET__SAFETY_RESERVE=8000
        MEMWEAVE_SELECTION__RECENCY_DECAY_DAYS=14
    """

    budget: BudgetConfig = Field(default_factory=BudgetConfig, description="Budget configuration")
    selection: SelectionConfig = Field(default_factory=SelectionConfig, description="Selection configuration")
    render: RenderConfig = Field(default_factory=RenderConfig, description="Rendering configuration")
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig, description="Observability configuration")

    model_config = SettingsConfigDict(
        env_prefix="MEMWEAVE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @classmethod
    def load_from_file(cls, config_path: Path) -> "MemweaveSettings":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            MemweaveSettings instance

        Raises:
            ConfigurationError: If file cannot be read or parsed
            ConfigValidationError: If the values fail validation
        """
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                {"path": str(config_path)},
                error_code=ErrorCode.CONFIG_MISSING
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                {"path": str(config_path)},
                cause=e
            )
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration: {e}",
                {"path": str(config_path)},
                cause=e
            )

        if not config_data:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                {"path": str(config_path), "type": type(config_data).__name__}
            )

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(
                "Configuration validation failed",
                {"path": str(config_path), "errors": e.errors(include_url=False)},
                cause=e
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()


@lru_cache(maxsize=1)
def get_settings() -> MemweaveSettings:
    """
    Get global settings instance (singleton).

    Returns:
        MemweaveSettings instance

    Raises:
        ConfigValidationError: If environment values fail validation
    """
    config_path = Path(DEFAULT_CONFIG_FILE)

    if config_path.exists():
        settings = MemweaveSettings.load_from_file(config_path)
    else:
        try:
            settings = MemweaveSettings()
        except ValidationError as e:
            raise ConfigValidationError(
                "Configuration validation failed",
                {"errors": e.errors(include_url=False)},
                cause=e
            )

    logger.debug(
        "Settings loaded",
        extra={
            "context_size": settings.budget.default_context_size,
            "estimator": settings.render.estimator
        }
    )
    return settings


def resolve_settings(config: Optional[MemweaveSettings] = None) -> MemweaveSettings:
    """
    Settings for engine calls.

    Uses ``config`` when given, otherwise the global settings. An invalid
    configuration file or environment is logged and replaced by the
    built-in defaults so context assembly never fails on configuration.

    Args:
        config: Explicit settings

    Returns:
        MemweaveSettings instance
    """
    if config is not None:
        return config

    try:
        return get_settings()
    except MemweaveError as e:
        logger.warning(f"Ignoring invalid configuration, using defaults: {e}")
        return MemweaveSettings.model_construct()


def reset_settings() -> None:
    """Reset global settings (for testing)."""
    get_settings.cache_clear()


__all__ = [
    "CategoryPercentages",
    "BudgetConfig",
    "SelectionConfig",
    "RenderConfig",
    "ObservabilityConfig",
    "MemweaveSettings",
    "get_settings",
    "resolve_settings",
    "reset_settings",
]
