"""
Context - Budgeted context-window assembly from memory records.

Turns candidate conversation turns, memories, learnings and entities into
one bounded text block for a language-model prompt.

Example:
    ```python
    from memweave.context import (
        get_budget_for_model,
        build_context_window,
        format_context_window,
        get_context_stats,
    )

    budget = get_budget_for_model("claude-3-opus")
    window = build_context_window(
        messages=[{"role": "user", "content": "Hi", "created_at": "2026-10-01T09:00:00Z"}],
        memories=[{"content": "Prefers dark mode", "category": "preference", "importance": 0.9}],
        budget=budget,
    )

    text = format_context_window(window, group_by_type=True)
    stats = get_context_stats(window)
    ```
"""

from memweave.context.token_manager import (
    TokenCounter,
    estimate_tokens,
    estimate_tokens_accurate,
    get_estimator,
)
from memweave.context.models import (
    ContextCategory,
    ContextItem,
    ContextBudget,
    ContextWindow,
    WindowStats,
    SelectionWeights,
    OptimizedContext,
    ModelComparison,
    TokenUsage,
    MessageRecord,
    MemoryRecord,
    LearningRecord,
    EntityRecord,
)
from memweave.context.budget import (
    MODEL_CONTEXT_SIZES,
    create_context_budget,
    create_adaptive_budget,
    get_budget_for_model,
    get_model_context_size,
    recommend_context_size,
)
from memweave.context.normalizer import (
    messages_to_context_items,
    memories_to_context_items,
    learnings_to_context_items,
    entities_to_context_items,
)
from memweave.context.selector import (
    ScoredItem,
    recency_score,
    score_context_items,
    select_context_items,
)
from memweave.context.arranger import arrange_for_lost_in_middle
from memweave.context.window import (
    build_context_window,
    format_context_window,
    get_context_stats,
    build_optimized_context,
    compare_model_budgets,
    estimate_token_usage,
)

__all__ = [
    # Token estimation
    "TokenCounter",
    "estimate_tokens",
    "estimate_tokens_accurate",
    "get_estimator",
    # Models
    "ContextCategory",
    "ContextItem",
    "ContextBudget",
    "ContextWindow",
    "WindowStats",
    "SelectionWeights",
    "OptimizedContext",
    "ModelComparison",
    "TokenUsage",
    "MessageRecord",
    "MemoryRecord",
    "LearningRecord",
    "EntityRecord",
    # Budgets
    "MODEL_CONTEXT_SIZES",
    "create_context_budget",
    "create_adaptive_budget",
    "get_budget_for_model",
    "get_model_context_size",
    "recommend_context_size",
    # Normalization
    "messages_to_context_items",
    "memories_to_context_items",
    "learnings_to_context_items",
    "entities_to_context_items",
    # Selection and arrangement
    "ScoredItem",
    "recency_score",
    "score_context_items",
    "select_context_items",
    "arrange_for_lost_in_middle",
    # Windows
    "build_context_window",
    "format_context_window",
    "get_context_stats",
    "build_optimized_context",
    "compare_model_budgets",
    "estimate_token_usage",
]
