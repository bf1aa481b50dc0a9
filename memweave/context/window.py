"""
Context Window - Assemble, render and measure a context window.

Provides:
- Per-category selection against per-category ceilings
- Fixed category order with optional lost-in-the-middle arrangement
- Flat or grouped text rendering
- Window statistics
- A one-call builder that also picks the budget
- Side-by-side builds across model presets and a raw usage estimate
"""

from typing import Any, Dict, Iterable, List, Optional, Union
from datetime import datetime, timezone
import logging

from memweave.core.config import MemweaveSettings, resolve_settings
from memweave.context.arranger import arrange_for_lost_in_middle
from memweave.context.budget import (
    create_adaptive_budget,
    create_context_budget,
    get_budget_for_model,
    recommend_context_size,
)
from memweave.context.models import (
    ContextBudget,
    ContextCategory,
    ContextItem,
    ContextWindow,
    MemoryRecord,
    MessageRecord,
    ModelComparison,
    OptimizedContext,
    SelectionWeights,
    TokenUsage,
    WindowStats,
    coerce_datetime,
)
from memweave.context.normalizer import (
    coerce_records,
    entities_to_context_items,
    learnings_to_context_items,
    memories_to_context_items,
    messages_to_context_items,
)
from memweave.context.selector import resolve_weights, select_context_items
from memweave.context.token_manager import TokenCounter

logger = logging.getLogger(__name__)

# Conversation goes last: it is the most time-sensitive and sits closest
# to the prompt that follows the window.
CATEGORY_ORDER = (
    ContextCategory.MEMORY,
    ContextCategory.LEARNING,
    ContextCategory.ENTITY,
    ContextCategory.MESSAGE,
)

SECTION_HEADINGS = {
    ContextCategory.MEMORY: "# Relevant Memories",
    ContextCategory.LEARNING: "# Relevant Learnings",
    ContextCategory.ENTITY: "# Known Entities",
    ContextCategory.MESSAGE: "# Recent Conversation",
}

Records = Optional[Iterable[Union[Dict[str, Any], Any]]]

# Models compared when none are named
DEFAULT_COMPARISON_MODELS = ("gpt-3.5-turbo", "gpt-4-turbo", "claude-3.5-sonnet")


def build_context_window(
    messages: Records = None,
    memories: Records = None,
    learnings: Records = None,
    entities: Records = None,
    budget: Optional[ContextBudget] = None,
    use_lost_in_middle_fix: Optional[bool] = None,
    weights: Optional[Union[SelectionWeights, Dict[str, Any]]] = None,
    now: Optional[datetime] = None,
    estimator: Optional[str] = None,
    config: Optional[MemweaveSettings] = None
) -> ContextWindow:
    """
    Build a context window within budget.

    Every category is selected against its own ceiling, so one category
    with uniformly high scores cannot starve the others.

    Args:
        messages: Conversation records
        memories: Memory records
        learnings: Learning records
        entities: Entity records
        budget: Per-category ceilings (default budget if None)
        use_lost_in_middle_fix: Arrange the result for lost-in-the-middle
            (configured default, True, if None)
        weights: Importance/recency weights
        now: Reference time for recency (current UTC time if None)
        estimator: Token estimator name (configured default if None)
        config: Settings to read defaults from

    Returns:
        ContextWindow with items ordered memories, learnings, entities,
        conversation (before any arrangement)
    """
    settings = resolve_settings(config)

    if budget is None:
        budget = create_context_budget(config=settings)
    if use_lost_in_middle_fix is None:
        use_lost_in_middle_fix = settings.render.use_lost_in_middle_fix
    estimator = estimator or settings.render.estimator
    weights = resolve_weights(weights, settings)
    now = coerce_datetime(now) or datetime.now(timezone.utc)

    candidates = {
        ContextCategory.MEMORY: memories_to_context_items(memories, estimator),
        ContextCategory.LEARNING: learnings_to_context_items(learnings, estimator),
        ContextCategory.ENTITY: entities_to_context_items(entities, estimator),
        ContextCategory.MESSAGE: messages_to_context_items(messages, estimator),
    }

    items: List[ContextItem] = []
    truncated = False

    for category in CATEGORY_ORDER:
        category_items = candidates[category]
        selected = select_context_items(
            category_items,
            budget.ceiling(category),
            weights=weights,
            now=now,
            config=settings,
        )
        if len(selected) < len(category_items):
            truncated = True
        logger.debug(
            f"{category.value}: kept {len(selected)}/{len(category_items)} "
            f"within {budget.ceiling(category)} tokens"
        )
        items.extend(selected)

    if use_lost_in_middle_fix:
        items = arrange_for_lost_in_middle(items)

    return ContextWindow(
        items=items,
        total_tokens=sum(item.token_count for item in items),
        budget=budget,
        truncated=truncated,
    )


def _item_line(item: ContextItem, include_metadata: bool, grouped: bool) -> str:
    if not include_metadata:
        return item.text
    if grouped:
        return f"{item.text} (importance: {item.importance:.2f})"
    return f"{item.text} [{item.category.value}, importance: {item.importance:.2f}]"


def format_context_window(
    window: ContextWindow,
    group_by_type: bool = False,
    include_metadata: bool = False
) -> str:
    """
    Format a context window as text for a prompt.

    Flat mode writes one line per item in window order. Grouped mode
    writes a heading per non-empty category (memories, learnings,
    entities, conversation) followed by that category's items in the order
    they appear in the window.

    Args:
        window: Window to render
        group_by_type: Emit grouped sections instead of a flat list
        include_metadata: Append category and importance to each line

    Returns:
        Rendered text
    """
    if not group_by_type:
        return "\n".join(
            _item_line(item, include_metadata, grouped=False) for item in window.items
        )

    sections = []
    for category in CATEGORY_ORDER:
        lines = [
            _item_line(item, include_metadata, grouped=True)
            for item in window.items
            if item.category == category
        ]
        if lines:
            sections.append(f"{SECTION_HEADINGS[category]}\n\n" + "\n".join(lines))

    return "\n\n".join(sections)


def get_context_stats(window: ContextWindow) -> WindowStats:
    """
    Get context window statistics.

    ``budget_used`` is the share of the model context size the window
    takes; ``budget_remaining`` is what is left of it.
    """
    items_by_category: Dict[str, int] = {}
    for item in window.items:
        key = item.category.value
        items_by_category[key] = items_by_category.get(key, 0) + 1

    total = window.budget.total
    return WindowStats(
        total_items=len(window.items),
        total_tokens=window.total_tokens,
        items_by_category=items_by_category,
        budget_used=window.total_tokens / total if total > 0 else 0.0,
        budget_remaining=total - window.total_tokens,
        truncated=window.truncated,
    )


def _as_list(records: Records) -> List[Any]:
    return list(records) if records is not None else []


def build_optimized_context(
    messages: Records = None,
    memories: Records = None,
    learnings: Records = None,
    entities: Records = None,
    model: Optional[str] = None,
    total: Optional[int] = None,
    budget: Optional[ContextBudget] = None,
    use_lost_in_middle_fix: Optional[bool] = None,
    weights: Optional[Union[SelectionWeights, Dict[str, Any]]] = None,
    now: Optional[datetime] = None,
    estimator: Optional[str] = None,
    group_by_type: Optional[bool] = None,
    include_metadata: Optional[bool] = None,
    config: Optional[MemweaveSettings] = None
) -> OptimizedContext:
    """
    Build, render and measure a context window in one call.

    The budget is chosen in this order: an explicit ``budget``, a ``model``
    preset, an explicit ``total``, and otherwise an adaptive budget sized
    by how many candidates each category has.

    Example:
        ```python
        result = build_optimized_context(
            messages=session_messages,
            memories=recalled,
            learnings=lessons,
            entities=people,
            model="claude-3-opus",
        )

        prompt = f'''
        {result.formatted}

        User Query: {query}
        '''
        ```
    """
    settings = resolve_settings(config)

    messages = _as_list(messages)
    memories = _as_list(memories)
    learnings = _as_list(learnings)
    entities = _as_list(entities)

    if budget is None:
        if model:
            budget = get_budget_for_model(model, config=settings)
        elif total is not None:
            budget = create_context_budget(total=total, config=settings)
        else:
            budget = create_adaptive_budget(
                message_count=len(messages),
                memory_count=len(memories),
                learning_count=len(learnings),
                entity_count=len(entities),
                config=settings,
            )

    window = build_context_window(
        messages=messages,
        memories=memories,
        learnings=learnings,
        entities=entities,
        budget=budget,
        use_lost_in_middle_fix=use_lost_in_middle_fix,
        weights=weights,
        now=now,
        estimator=estimator,
        config=settings,
    )

    formatted = format_context_window(
        window,
        group_by_type=settings.render.group_by_type if group_by_type is None else group_by_type,
        include_metadata=settings.render.include_metadata if include_metadata is None else include_metadata,
    )

    return OptimizedContext(
        window=window,
        formatted=formatted,
        stats=get_context_stats(window),
    )


def compare_model_budgets(
    messages: Records = None,
    memories: Records = None,
    learnings: Records = None,
    entities: Records = None,
    models: Optional[Iterable[str]] = None,
    use_lost_in_middle_fix: Optional[bool] = None,
    weights: Optional[Union[SelectionWeights, Dict[str, Any]]] = None,
    now: Optional[datetime] = None,
    estimator: Optional[str] = None,
    config: Optional[MemweaveSettings] = None
) -> List[ModelComparison]:
    """
    Build the same candidates under several model presets.

    Useful for seeing how much of a session survives on a smaller model
    before switching to it.

    Args:
        messages: Conversation records
        memories: Memory records
        learnings: Learning records
        entities: Entity records
        models: Model names to compare (gpt-3.5-turbo, gpt-4-turbo and
            claude-3.5-sonnet if None)
        use_lost_in_middle_fix: Arrange each window for lost-in-the-middle
        weights: Importance/recency weights
        now: Reference time for recency, shared by every build
        estimator: Token estimator name
        config: Settings to read defaults from

    Returns:
        One ModelComparison per model, in the order given
    """
    settings = resolve_settings(config)
    models = list(models) if models else list(DEFAULT_COMPARISON_MODELS)
    now = coerce_datetime(now) or datetime.now(timezone.utc)

    messages = _as_list(messages)
    memories = _as_list(memories)
    learnings = _as_list(learnings)
    entities = _as_list(entities)

    results = []
    for model in models:
        result = build_optimized_context(
            messages=messages,
            memories=memories,
            learnings=learnings,
            entities=entities,
            model=model,
            use_lost_in_middle_fix=use_lost_in_middle_fix,
            weights=weights,
            now=now,
            estimator=estimator,
            config=settings,
        )
        results.append(ModelComparison(
            model=model,
            budget=result.window.budget,
            stats=result.stats,
        ))

    return results


def estimate_token_usage(
    messages: Records = None,
    memories: Records = None,
    estimator: Optional[str] = None,
    config: Optional[MemweaveSettings] = None
) -> TokenUsage:
    """
    Estimate the raw token footprint of a session.

    Counts message and memory content as stored, without the role and
    category prefixes a window adds, and recommends the smallest context
    size tier that holds the total.
    """
    settings = resolve_settings(config)
    counter = TokenCounter(estimator or settings.render.estimator)

    message_tokens = counter.count_items(
        msg.content for msg in coerce_records(messages, MessageRecord)
    )
    memory_tokens = counter.count_items(
        mem.content for mem in coerce_records(memories, MemoryRecord)
    )
    total = message_tokens + memory_tokens

    return TokenUsage(
        messages=message_tokens,
        memories=memory_tokens,
        total=total,
        context_size=recommend_context_size(total),
    )


__all__ = [
    "CATEGORY_ORDER",
    "SECTION_HEADINGS",
    "DEFAULT_COMPARISON_MODELS",
    "build_context_window",
    "format_context_window",
    "get_context_stats",
    "build_optimized_context",
    "compare_model_budgets",
    "estimate_token_usage",
]
