"""
Budget Allocator - Split a model context size into per-category ceilings.

Provides:
- Fixed-percentage allocation
- Content-adaptive allocation from candidate counts
- Model-name presets

Percentages always apply to what is left after the system-prompt and
safety reserves, never to the raw model context size.
"""

from typing import Dict, List, Mapping, Optional, Tuple
import math
import logging

from memweave.core.config import MemweaveSettings, resolve_settings
from memweave.context.models import ContextBudget, ContextCategory, coerce_float, coerce_int

logger = logging.getLogger(__name__)


# Model context windows
MODEL_CONTEXT_SIZES: Dict[str, int] = {
    # Claude models
    "claude-3-opus": 200000,
    "claude-3-sonnet": 200000,
    "claude-3-haiku": 200000,
    "claude-3.5-sonnet": 200000,
    "claude-3-5-sonnet": 200000,
    # GPT models
    "gpt-4o": 128000,
    "gpt-4-turbo": 128000,
    "gpt-4": 8192,
    "gpt-3.5-turbo": 16384,
    # Other models
    "gemini-pro": 32000,
    "llama-3-70b": 8192,
}

DEFAULT_MODEL_CONTEXT_SIZE = 128000

# Context-size tiers, smallest first; anything larger needs the biggest tier
CONTEXT_SIZE_TIERS: List[Tuple[int, str]] = [
    (4000, "4k"),
    (8000, "8k"),
    (16000, "16k"),
    (32000, "32k"),
    (64000, "64k"),
    (128000, "128k"),
]
LARGEST_CONTEXT_SIZE = "200k"

# Keys accepted in a percentages mapping
_CATEGORY_KEYS: Dict[str, ContextCategory] = {
    "recent_messages": ContextCategory.MESSAGE,
    "messages": ContextCategory.MESSAGE,
    "message": ContextCategory.MESSAGE,
    "conversation": ContextCategory.MESSAGE,
    "memories": ContextCategory.MEMORY,
    "memory": ContextCategory.MEMORY,
    "learnings": ContextCategory.LEARNING,
    "learning": ContextCategory.LEARNING,
    "entities": ContextCategory.ENTITY,
    "entity": ContextCategory.ENTITY,
}

# Guards floor() against products like 0.3 * 122000 landing a hair below an integer
_FLOOR_EPSILON = 1e-9


def _resolve_category(key) -> Optional[ContextCategory]:
    if isinstance(key, ContextCategory):
        return key
    return _CATEGORY_KEYS.get(str(key).strip().lower())


def _default_shares(settings: MemweaveSettings) -> Dict[ContextCategory, float]:
    pct = settings.budget.percentages
    return {
        ContextCategory.MESSAGE: pct.recent_messages,
        ContextCategory.MEMORY: pct.memories,
        ContextCategory.LEARNING: pct.learnings,
        ContextCategory.ENTITY: pct.entities,
    }


def _normalize_shares(
    percentages: Optional[Mapping],
    defaults: Dict[ContextCategory, float]
) -> Dict[ContextCategory, float]:
    """Merge caller percentages over the defaults and keep their sum within 1."""
    shares = dict(defaults)

    for key, value in (percentages or {}).items():
        category = _resolve_category(key)
        if category is None:
            logger.warning(f"Ignoring unknown budget category {key!r}")
            continue
        shares[category] = max(0.0, coerce_float(value, 0.0))

    total = sum(shares.values())
    if total > 1.0 + _FLOOR_EPSILON:
        logger.warning(f"Category percentages sum to {total:.3f}, scaling down to 1.0")
        shares = {category: share / total for category, share in shares.items()}

    return shares


def _allocate(
    total,
    shares: Dict[ContextCategory, float],
    system_prompt_reserve,
    safety_reserve
) -> ContextBudget:
    """Apply shares to the tokens left after the reserves."""
    total = max(0, coerce_int(total, 0))

    # Reserves never claim more than the model has
    system_prompt_reserve = min(max(0, coerce_int(system_prompt_reserve, 0)), total)
    safety_reserve = min(max(0, coerce_int(safety_reserve, 0)), total - system_prompt_reserve)

    available = max(0, total - system_prompt_reserve - safety_reserve)

    per_category = {
        category: int(math.floor(available * shares.get(category, 0.0) + _FLOOR_EPSILON))
        for category in ContextCategory
    }

    return ContextBudget(
        total=total,
        system_prompt_reserve=system_prompt_reserve,
        safety_reserve=safety_reserve,
        per_category=per_category,
    )


def create_context_budget(
    total: Optional[int] = None,
    percentages: Optional[Mapping] = None,
    system_prompt_reserve: Optional[int] = None,
    safety_reserve: Optional[int] = None,
    config: Optional[MemweaveSettings] = None
) -> ContextBudget:
    """
    Allocate a context budget with fixed percentages.

    Args:
        total: Model context size in tokens (configured default if None)
        percentages: Per-category shares; keys such as ``recent_messages``,
            ``memories``, ``learnings``, ``entities`` (or ContextCategory).
            Missing keys keep their defaults (40/30/20/10).
        system_prompt_reserve: Tokens held for the system prompt (default 2000)
        safety_reserve: Tokens held for input and response (default 4000)
        config: Settings to read defaults from

    Returns:
        ContextBudget whose reserves plus ceilings never exceed ``total``

    Example:
        ```python
        budget = create_context_budget(128000)
        budget.recent_messages  # 48800
        ```
    """
    settings = resolve_settings(config)

    if total is None:
        total = settings.budget.default_context_size
    if system_prompt_reserve is None:
        system_prompt_reserve = settings.budget.system_prompt_reserve
    if safety_reserve is None:
        safety_reserve = settings.budget.safety_reserve

    shares = _normalize_shares(percentages, _default_shares(settings))
    return _allocate(total, shares, system_prompt_reserve, safety_reserve)


def create_adaptive_budget(
    message_count: int = 0,
    memory_count: int = 0,
    learning_count: int = 0,
    entity_count: int = 0,
    total: Optional[int] = None,
    config: Optional[MemweaveSettings] = None
) -> ContextBudget:
    """
    Allocate a context budget in proportion to the candidates available.

    Each category's share is its candidate count over the total count, so
    an empty category gets nothing. With no candidates at all the fixed
    defaults are used.

    Args:
        message_count: Number of conversation candidates
        memory_count: Number of memory candidates
        learning_count: Number of learning candidates
        entity_count: Number of entity candidates
        total: Model context size in tokens (configured default if None)
        config: Settings to read defaults from

    Returns:
        ContextBudget
    """
    settings = resolve_settings(config)

    counts = {
        ContextCategory.MESSAGE: max(0, coerce_int(message_count, 0)),
        ContextCategory.MEMORY: max(0, coerce_int(memory_count, 0)),
        ContextCategory.LEARNING: max(0, coerce_int(learning_count, 0)),
        ContextCategory.ENTITY: max(0, coerce_int(entity_count, 0)),
    }
    total_count = sum(counts.values())

    if total_count == 0:
        return create_context_budget(total=total, config=settings)

    if total is None:
        total = settings.budget.default_context_size

    shares = {category: count / total_count for category, count in counts.items()}
    return _allocate(
        total,
        shares,
        settings.budget.system_prompt_reserve,
        settings.budget.safety_reserve,
    )


def get_model_context_size(model: Optional[str]) -> int:
    """Context size for a known model name, or the default."""
    key = (model or "").strip().lower()
    size = MODEL_CONTEXT_SIZES.get(key)
    if size is None:
        logger.warning(f"Unknown model {model}, using default {DEFAULT_MODEL_CONTEXT_SIZE} token context")
        return DEFAULT_MODEL_CONTEXT_SIZE
    return size


def recommend_context_size(tokens) -> str:
    """
    Smallest context-size tier that holds ``tokens``.

    Example:
        ```python
        recommend_context_size(3500)   # "4k"
        recommend_context_size(70000)  # "128k"
        ```
    """
    tokens = max(0, coerce_int(tokens, 0))
    for limit, label in CONTEXT_SIZE_TIERS:
        if tokens <= limit:
            return label
    return LARGEST_CONTEXT_SIZE


def get_budget_for_model(
    model: Optional[str],
    config: Optional[MemweaveSettings] = None
) -> ContextBudget:
    """
    Fixed-percentage budget for a model name.

    Args:
        model: Model identifier such as ``claude-3-opus`` or ``gpt-4-turbo``
        config: Settings to read reserves and percentages from

    Returns:
        ContextBudget; unknown models get a 128000-token context
    """
    return create_context_budget(total=get_model_context_size(model), config=config)


__all__ = [
    "MODEL_CONTEXT_SIZES",
    "DEFAULT_MODEL_CONTEXT_SIZE",
    "create_context_budget",
    "create_adaptive_budget",
    "CONTEXT_SIZE_TIERS",
    "get_model_context_size",
    "get_budget_for_model",
    "recommend_context_size",
]
