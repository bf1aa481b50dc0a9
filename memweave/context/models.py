"""
Data model for context window assembly.

Input records are lenient: every field has a default and malformed values
degrade to that default instead of failing validation. Engine types
(ContextItem, ContextBudget, ContextWindow) are frozen once built.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from enum import Enum
import math
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from memweave.context.token_manager import DEFAULT_ESTIMATOR, ESTIMATORS, get_estimator


class ContextCategory(str, Enum):
    """The four kinds of content a window is assembled from."""
    MESSAGE = "message"
    MEMORY = "memory"
    LEARNING = "learning"
    ENTITY = "entity"


def coerce_float(value: Any, default: Optional[float]) -> Optional[float]:
    """Best-effort float conversion; returns ``default`` on failure."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def coerce_int(value: Any, default: int) -> int:
    """Best-effort int conversion; returns ``default`` on failure."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def coerce_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts datetimes and ISO-8601 strings. Naive values are taken as UTC.
    Anything else becomes None.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def clamp_unit(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return max(0.0, min(1.0, value))


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


class _Record(BaseModel):
    """Base for lenient source records."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("metadata", mode="before", check_fields=False)
    @classmethod
    def _default_metadata(cls, v):
        return v if isinstance(v, dict) else {}

    @field_validator("id", "session_id", mode="before", check_fields=False)
    @classmethod
    def _optional_str(cls, v):
        return None if v is None else str(v)


class MessageRecord(_Record):
    """A conversation turn."""

    id: Optional[str] = None
    session_id: Optional[str] = Field(None, validation_alias=AliasChoices("session_id", "sessionId"))
    role: str = "user"
    content: str = ""
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v):
        return str(v).strip().lower() if v else "user"

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v):
        return "" if v is None else str(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_at(cls, v):
        return coerce_datetime(v)


class MemoryRecord(_Record):
    """A long-term fact."""

    id: Optional[str] = None
    category: Optional[str] = None
    content: str = ""
    importance: float = 0.5
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return str(v) if v else None

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v):
        return "" if v is None else str(v)

    @field_validator("importance", mode="before")
    @classmethod
    def _importance(cls, v):
        return coerce_float(v, 0.5)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_at(cls, v):
        return coerce_datetime(v)


class LearningRecord(_Record):
    """A self-improvement note."""

    id: Optional[str] = None
    category: str = "improvement"
    trigger: str = ""
    lesson: str = ""
    action: Optional[str] = None
    severity: str = "info"
    importance: Optional[float] = None
    applied_count: int = Field(0, validation_alias=AliasChoices("applied_count", "appliedCount"))
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return str(v) if v else "improvement"

    @field_validator("trigger", "lesson", mode="before")
    @classmethod
    def _text(cls, v):
        return "" if v is None else str(v)

    @field_validator("action", mode="before")
    @classmethod
    def _action(cls, v):
        return str(v) if v else None

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v):
        return str(v).strip().lower() if v else "info"

    @field_validator("importance", mode="before")
    @classmethod
    def _importance(cls, v):
        return coerce_float(v, None)

    @field_validator("applied_count", mode="before")
    @classmethod
    def _applied_count(cls, v):
        return coerce_int(v, 0)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_at(cls, v):
        return coerce_datetime(v)


class EntityRecord(_Record):
    """An extracted entity (person, project, place...)."""

    id: Optional[str] = None
    entity_type: str = Field("unknown", validation_alias=AliasChoices("entity_type", "type", "entityType"))
    name: str = ""
    description: Optional[str] = None
    mention_count: int = Field(0, validation_alias=AliasChoices("mention_count", "mentionCount"))
    last_seen_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("last_seen_at", "lastSeenAt"))

    @field_validator("entity_type", mode="before")
    @classmethod
    def _entity_type(cls, v):
        return str(v) if v else "unknown"

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return "" if v is None else str(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return str(v) if v else None

    @field_validator("mention_count", mode="before")
    @classmethod
    def _mention_count(cls, v):
        return max(0, coerce_int(v, 0))

    @field_validator("last_seen_at", mode="before")
    @classmethod
    def _last_seen_at(cls, v):
        return coerce_datetime(v)


# ---------------------------------------------------------------------------
# Engine types
# ---------------------------------------------------------------------------


class ContextItem(BaseModel):
    """
    One normalized candidate.

    ``token_count`` is always computed from ``text`` with the item's
    estimator; any value passed in is replaced.
    """

    model_config = ConfigDict(frozen=True)

    category: ContextCategory
    text: str = ""
    importance: float = 0.5
    timestamp: Optional[datetime] = None
    token_count: int = 0
    estimator: str = DEFAULT_ESTIMATOR
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def derive_token_count(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)
        text = data.get("text")
        data["text"] = "" if text is None else str(text)

        estimator = str(data.get("estimator") or DEFAULT_ESTIMATOR).lower()
        if estimator not in ESTIMATORS:
            estimator = DEFAULT_ESTIMATOR
        data["estimator"] = estimator
        data["token_count"] = get_estimator(estimator)(data["text"])
        return data

    @field_validator("importance", mode="before")
    @classmethod
    def _importance(cls, v):
        return clamp_unit(coerce_float(v, 0.5))

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, v):
        return coerce_datetime(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata(cls, v):
        return v if isinstance(v, dict) else {}


class ContextBudget(BaseModel):
    """Token ceilings for one window build."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(..., ge=0, description="Model context size")
    system_prompt_reserve: int = Field(0, ge=0, description="Tokens held for the system prompt")
    safety_reserve: int = Field(0, ge=0, description="Tokens held for input and response")
    per_category: Dict[ContextCategory, int] = Field(default_factory=dict)

    @property
    def available(self) -> int:
        """Tokens left after the reserves."""
        return max(0, self.total - self.system_prompt_reserve - self.safety_reserve)

    @property
    def allocated(self) -> int:
        """Sum of all category ceilings."""
        return sum(self.per_category.values())

    def ceiling(self, category: ContextCategory) -> int:
        """Ceiling for one category (0 when absent)."""
        return self.per_category.get(category, 0)

    @property
    def recent_messages(self) -> int:
        return self.ceiling(ContextCategory.MESSAGE)

    @property
    def memories(self) -> int:
        return self.ceiling(ContextCategory.MEMORY)

    @property
    def learnings(self) -> int:
        return self.ceiling(ContextCategory.LEARNING)

    @property
    def entities(self) -> int:
        return self.ceiling(ContextCategory.ENTITY)


class SelectionWeights(BaseModel):
    """Blend of importance and recency. Expected, not required, to sum to 1."""

    importance_weight: float = 0.7
    recency_weight: float = 0.3

    @field_validator("importance_weight", mode="before")
    @classmethod
    def _importance_weight(cls, v):
        return coerce_float(v, 0.7)

    @field_validator("recency_weight", mode="before")
    @classmethod
    def _recency_weight(cls, v):
        return coerce_float(v, 0.3)


class ContextWindow(BaseModel):
    """The ordered result of one build."""

    model_config = ConfigDict(frozen=True)

    items: List[ContextItem] = Field(default_factory=list)
    total_tokens: int = 0
    budget: ContextBudget
    truncated: bool = False


class WindowStats(BaseModel):
    """Statistics derived from a ContextWindow."""

    total_items: int
    total_tokens: int
    items_by_category: Dict[str, int]
    budget_used: float
    budget_remaining: int
    truncated: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()


class OptimizedContext(BaseModel):
    """Window, rendered text and stats from a single orchestration call."""

    window: ContextWindow
    formatted: str
    stats: WindowStats


class ModelComparison(BaseModel):
    """Budget and window stats for one model in a comparison run."""

    model: str
    budget: ContextBudget
    stats: WindowStats


class TokenUsage(BaseModel):
    """Raw token footprint of a session and the context size it calls for."""

    messages: int = 0
    memories: int = 0
    total: int = 0
    context_size: str = "4k"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()


__all__ = [
    "ContextCategory",
    "MessageRecord",
    "MemoryRecord",
    "LearningRecord",
    "EntityRecord",
    "ContextItem",
    "ContextBudget",
    "SelectionWeights",
    "ContextWindow",
    "WindowStats",
    "OptimizedContext",
    "ModelComparison",
    "TokenUsage",
    "coerce_datetime",
    "coerce_float",
    "coerce_int",
    "clamp_unit",
]
