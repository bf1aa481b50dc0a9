"""
memweave - Budgeted context windows from agent memory.

Assembles conversation turns, long-term memories, learnings and entities
into a single prompt block that stays within a token budget.
"""

from memweave.__version__ import __version__
from memweave.context import (
    ContextBudget,
    ContextItem,
    ContextWindow,
    SelectionWeights,
    WindowStats,
    build_context_window,
    build_optimized_context,
    compare_model_budgets,
    create_adaptive_budget,
    create_context_budget,
    format_context_window,
    get_budget_for_model,
    get_context_stats,
)

__all__ = [
    "__version__",
    "ContextBudget",
    "ContextItem",
    "ContextWindow",
    "SelectionWeights",
    "WindowStats",
    "build_context_window",
    "build_optimized_context",
    "compare_model_budgets",
    "create_adaptive_budget",
    "create_context_budget",
    "format_context_window",
    "get_budget_for_model",
    "get_context_stats",
]
