"""Tests for window assembly, rendering and statistics."""
import copy

import pytest

from memweave.context.budget import create_context_budget
from memweave.context.models import ContextBudget, ContextCategory, ContextItem, ContextWindow
from memweave.context.window import (
    build_context_window,
    build_optimized_context,
    compare_model_budgets,
    estimate_token_usage,
    format_context_window,
    get_context_stats,
)
from tests.conftest import NOW


def _tiny_budget(**ceilings):
    return ContextBudget(
        total=1000,
        per_category={ContextCategory(key): value for key, value in ceilings.items()},
    )


class TestBuildContextWindow:
    """Per-category selection and ordering."""

    def test_category_order(self, settings, sample_records):
        window = build_context_window(
            **sample_records, use_lost_in_middle_fix=False, now=NOW, config=settings
        )

        assert [item.category for item in window.items] == [
            ContextCategory.MEMORY,
            ContextCategory.LEARNING,
            ContextCategory.ENTITY,
            ContextCategory.MESSAGE,
        ]
        assert window.total_tokens == sum(item.token_count for item in window.items)
        assert not window.truncated

    def test_lost_in_middle_applies_to_concatenation(self, settings, sample_records):
        window = build_context_window(
            **sample_records, use_lost_in_middle_fix=True, now=NOW, config=settings
        )

        assert [item.category for item in window.items] == [
            ContextCategory.MEMORY,
            ContextCategory.ENTITY,
            ContextCategory.MESSAGE,
            ContextCategory.LEARNING,
        ]

    def test_lost_in_middle_is_default(self, settings, sample_records):
        window = build_context_window(**sample_records, now=NOW, config=settings)
        assert window.items[-1].category == ContextCategory.LEARNING

    def test_default_budget(self, settings):
        window = build_context_window(config=settings)

        assert window.items == []
        assert window.budget.total == 128000
        assert not window.truncated

    def test_truncates_long_conversation(self, settings):
        messages = [{"role": "user", "content": "x" * 100} for _ in range(1000)]
        budget = create_context_budget(8000, config=settings)

        window = build_context_window(messages=messages, budget=budget, now=NOW, config=settings)

        assert window.truncated
        assert len(window.items) == 29
        assert window.total_tokens <= budget.recent_messages

    def test_exact_fit_is_not_truncated(self, settings):
        messages = [{"role": "user", "content": "hi"}]

        fits = build_context_window(messages=messages, budget=_tiny_budget(message=2), config=settings)
        overflows = build_context_window(messages=messages, budget=_tiny_budget(message=1), config=settings)

        assert not fits.truncated
        assert len(fits.items) == 1
        assert overflows.truncated
        assert overflows.items == []

    def test_categories_do_not_compete(self, settings):
        memories = [{"content": "y" * 40, "importance": 1.0} for _ in range(5)]
        messages = [{"role": "assistant", "content": "ok"}]

        window = build_context_window(
            messages=messages,
            memories=memories,
            budget=_tiny_budget(memory=15, message=10),
            use_lost_in_middle_fix=False,
            config=settings,
        )

        assert window.items[-1].text == "assistant: ok"
        assert window.truncated

    def test_each_category_within_its_ceiling(self, settings, sample_records):
        records = {key: value * 20 for key, value in sample_records.items()}
        budget = create_context_budget(6400, config=settings)

        window = build_context_window(**records, budget=budget, now=NOW, config=settings)

        for category in ContextCategory:
            used = sum(item.token_count for item in window.items if item.category == category)
            assert used <= budget.ceiling(category)

    def test_inputs_not_mutated(self, settings, sample_records):
        before = copy.deepcopy(sample_records)
        build_context_window(**sample_records, now=NOW, config=settings)
        assert sample_records == before


@pytest.fixture
def window(settings):
    items = [
        ContextItem(category=ContextCategory.MEMORY, text="m1", importance=0.9),
        ContextItem(category=ContextCategory.MESSAGE, text="user: hi", importance=0.6),
        ContextItem(category=ContextCategory.MEMORY, text="m2", importance=0.5),
    ]
    return ContextWindow(
        items=items,
        total_tokens=sum(item.token_count for item in items),
        budget=create_context_budget(128000, config=settings),
    )


class TestFormatContextWindow:
    """Rendering."""

    def test_flat(self, window):
        assert format_context_window(window) == "m1\nuser: hi\nm2"

    def test_flat_with_metadata(self, window):
        text = format_context_window(window, include_metadata=True)
        assert text.splitlines()[0] == "m1 [memory, importance: 0.90]"

    def test_grouped(self, window):
        text = format_context_window(window, group_by_type=True)
        assert text == "# Relevant Memories\n\nm1\nm2\n\n# Recent Conversation\n\nuser: hi"

    def test_grouped_with_metadata(self, window):
        text = format_context_window(window, group_by_type=True, include_metadata=True)
        assert "m2 (importance: 0.50)" in text

    def test_empty_window(self, settings):
        empty = ContextWindow(budget=create_context_budget(128000, config=settings))
        assert format_context_window(empty) == ""
        assert format_context_window(empty, group_by_type=True) == ""


class TestGetContextStats:
    """Window statistics."""

    def test_stats(self, window):
        stats = get_context_stats(window)

        assert stats.total_items == 3
        assert stats.total_tokens == 4
        assert stats.items_by_category == {"memory": 2, "message": 1}
        assert stats.budget_used == pytest.approx(4 / 128000)
        assert stats.budget_remaining == 127996
        assert stats.truncated is False
        assert stats.to_dict()["total_items"] == 3

    def test_zero_total_budget(self):
        empty = ContextWindow(budget=ContextBudget(total=0))
        assert get_context_stats(empty).budget_used == 0.0


class TestBuildOptimizedContext:
    """One-call orchestration."""

    def test_model_preset(self, settings, sample_records):
        result = build_optimized_context(**sample_records, model="claude-3-opus", now=NOW, config=settings)

        assert result.window.budget.total == 200000
        assert result.stats.total_items == 4
        assert result.formatted.startswith("# Relevant Memories")
        assert "# Recent Conversation" in result.formatted

    def test_explicit_budget_wins(self, settings, sample_records):
        budget = _tiny_budget(message=100)

        result = build_optimized_context(
            **sample_records, model="claude-3-opus", total=9000, budget=budget, now=NOW, config=settings
        )

        assert result.window.budget is budget
        assert result.stats.items_by_category == {"message": 1}
        assert result.stats.truncated

    def test_total(self, settings):
        result = build_optimized_context(total=16000, config=settings)
        assert result.window.budget.total == 16000

    def test_adaptive_by_default(self, settings, sample_records):
        result = build_optimized_context(messages=sample_records["messages"], config=settings)

        assert result.window.budget.recent_messages == 122000
        assert result.window.budget.memories == 0

    def test_flat_render(self, settings, sample_records):
        result = build_optimized_context(
            **sample_records, group_by_type=False, use_lost_in_middle_fix=False, now=NOW, config=settings
        )

        assert result.formatted.splitlines()[0] == "[Memory: preference] Usual table is at Luigi's"
        assert "#" not in result.formatted


class TestCompareModelBudgets:
    """Same candidates under several models."""

    def test_default_models(self, settings, sample_records):
        results = compare_model_budgets(**sample_records, now=NOW, config=settings)

        assert [r.model for r in results] == ["gpt-3.5-turbo", "gpt-4-turbo", "claude-3.5-sonnet"]
        assert [r.budget.total for r in results] == [16384, 128000, 200000]
        assert all(r.stats.total_items == 4 for r in results)

    def test_named_models_in_order(self, settings, sample_records):
        results = compare_model_budgets(
            **sample_records, models=["claude-3-opus", "gpt-4"], now=NOW, config=settings
        )

        assert [r.model for r in results] == ["claude-3-opus", "gpt-4"]
        assert results[1].budget.recent_messages == 876

    def test_small_model_truncates(self, settings):
        messages = [{"role": "user", "content": "x" * 400} for _ in range(50)]

        small, large = compare_model_budgets(
            messages=messages, models=["gpt-4", "claude-3-opus"], config=settings
        )

        assert small.stats.truncated
        assert not large.stats.truncated
        assert small.stats.total_items < large.stats.total_items == 50


class TestEstimateTokenUsage:
    """Raw session footprint."""

    def test_counts_raw_content(self, settings):
        usage = estimate_token_usage(
            messages=[{"role": "user", "content": "x" * 40}, {"content": "y" * 8}],
            memories=[{"content": "z" * 4000, "category": "fact"}],
            config=settings,
        )

        assert usage.messages == 12
        assert usage.memories == 1000
        assert usage.total == 1012
        assert usage.context_size == "4k"

    def test_large_session(self, settings):
        usage = estimate_token_usage(messages=[{"content": "x" * 40000}] * 10, config=settings)

        assert usage.total == 100000
        assert usage.context_size == "128k"

    def test_accurate_estimator(self, settings):
        usage = estimate_token_usage(messages=[{"content": "a b c"}], estimator="accurate", config=settings)
        assert usage.messages == 4

    def test_empty(self, settings):
        usage = estimate_token_usage(config=settings)
        assert usage.to_dict() == {"messages": 0, "memories": 0, "total": 0, "context_size": "4k"}
