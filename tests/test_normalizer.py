"""Tests for converting source records into context items."""
import copy

import pytest
from pydantic import ValidationError

from memweave.context.models import (
    ContextCategory,
    ContextItem,
    LearningRecord,
    MemoryRecord,
)
from memweave.context.normalizer import (
    entities_to_context_items,
    learnings_to_context_items,
    memories_to_context_items,
    messages_to_context_items,
)
from memweave.context.token_manager import estimate_tokens, estimate_tokens_accurate


class TestContextItem:
    """Engine item invariants."""

    def test_token_count_derived_from_text(self):
        item = ContextItem(category="memory", text="x" * 100, token_count=999)
        assert item.token_count == 25

    def test_accurate_estimator(self):
        item = ContextItem(category="memory", text="one two three", estimator="accurate")
        assert item.token_count == 4

    def test_importance_clamped(self):
        assert ContextItem(category="entity", text="a", importance=3).importance == 1.0
        assert ContextItem(category="entity", text="a", importance=-1).importance == 0.0

    def test_items_are_frozen(self):
        item = ContextItem(category="memory", text="a")
        with pytest.raises(ValidationError):
            item.text = "b"


class TestMessages:
    """Conversation turns."""

    def test_user_and_assistant(self, now):
        items = messages_to_context_items([
            {"id": 1, "sessionId": "s", "role": "user", "content": "Hello", "createdAt": now.isoformat()},
            {"role": "assistant", "content": "Hi there!"},
        ])

        assert [item.text for item in items] == ["user: Hello", "assistant: Hi there!"]
        assert [item.importance for item in items] == [0.8, 0.6]
        assert items[0].category == ContextCategory.MESSAGE
        assert items[0].token_count == 3
        assert items[0].timestamp == now
        assert items[0].metadata["id"] == "1"
        assert items[0].metadata["session_id"] == "s"
        assert items[1].timestamp is None

    def test_other_roles_score_like_assistant(self):
        items = messages_to_context_items([{"role": "system", "content": "Be brief"}])
        assert items[0].importance == 0.6

    def test_missing_role_defaults_to_user(self):
        items = messages_to_context_items([{"content": "ping"}])
        assert items[0].text == "user: ping"

    def test_estimator_is_applied(self):
        items = messages_to_context_items([{"role": "user", "content": "a b c d e f"}], estimator="accurate")
        assert items[0].token_count == estimate_tokens_accurate("user: a b c d e f")

    def test_none_and_garbage_inputs(self):
        assert messages_to_context_items(None) == []
        assert messages_to_context_items(["not a record", 42]) == []


class TestMemories:
    """Long-term memories."""

    def test_text_and_importance(self):
        items = memories_to_context_items([
            {"id": "m", "category": "preference", "content": "Likes window seats", "importance": 0.9},
        ])

        assert items[0].text == "[Memory: preference] Likes window seats"
        assert items[0].importance == 0.9
        assert items[0].token_count == estimate_tokens(items[0].text)

    def test_missing_category_and_importance(self):
        items = memories_to_context_items([{"content": "Has a dog"}])

        assert items[0].text == "[Memory: general] Has a dog"
        assert items[0].importance == 0.5

    def test_bad_importance_values(self):
        items = memories_to_context_items([
            {"content": "a", "importance": 1.7},
            {"content": "b", "importance": "very"},
        ])
        assert [item.importance for item in items] == [1.0, 0.5]

    def test_record_models_accepted(self):
        items = memories_to_context_items([MemoryRecord(content="From a model", importance=0.3)])
        assert items[0].importance == 0.3

    def test_unparseable_timestamp_is_none(self):
        items = memories_to_context_items([{"content": "a", "created_at": "last tuesday"}])
        assert items[0].timestamp is None

    def test_input_not_mutated(self):
        records = [{"content": "x", "metadata": {"tag": "t"}}]
        before = copy.deepcopy(records)
        memories_to_context_items(records)
        assert records == before


class TestLearnings:
    """Self-improvement notes."""

    @pytest.mark.parametrize("severity,importance", [
        ("critical", 0.9),
        ("warning", 0.7),
        ("info", 0.5),
        ("WARNING", 0.7),
        ("bogus", 0.5),
        (None, 0.5),
    ])
    def test_severity_maps_to_importance(self, severity, importance):
        items = learnings_to_context_items([{"lesson": "l", "severity": severity}])
        assert items[0].importance == importance

    def test_explicit_importance_wins(self):
        items = learnings_to_context_items([{"lesson": "l", "severity": "critical", "importance": 0.2}])
        assert items[0].importance == 0.2

    def test_text_with_trigger_and_action(self):
        items = learnings_to_context_items([{
            "category": "correction",
            "trigger": "booking",
            "lesson": "Confirm party size",
            "action": "Ask first",
            "appliedCount": 3,
        }])

        assert items[0].text == "[Learning: correction] booking -> Confirm party size\nAction: Ask first"
        assert items[0].metadata["applied"] == 3

    def test_text_without_trigger(self):
        items = learnings_to_context_items([LearningRecord(lesson="Keep answers short")])
        assert items[0].text == "[Learning: improvement] Keep answers short"


class TestEntities:
    """Extracted entities."""

    def test_importance_relative_to_most_mentioned(self):
        items = entities_to_context_items([
            {"name": "Alice", "type": "person", "mention_count": 10},
            {"name": "Bob", "type": "person", "mention_count": 5},
            {"name": "Carol", "type": "person"},
        ])
        assert [item.importance for item in items] == [1.0, 0.5, 0.0]

    def test_no_mentions_scores_zero(self):
        items = entities_to_context_items([{"name": "A"}, {"name": "B"}])
        assert [item.importance for item in items] == [0.0, 0.0]

    def test_text(self, now):
        items = entities_to_context_items([
            {"name": "Alice", "entity_type": "person", "description": "Friend", "lastSeenAt": now},
            {"name": "Acme"},
        ])

        assert items[0].text == "[Entity: person] Alice: Friend"
        assert items[0].timestamp == now
        assert items[1].text == "[Entity: unknown] Acme"

    def test_negative_mentions_clamped(self):
        items = entities_to_context_items([
            {"name": "A", "mention_count": -3},
            {"name": "B", "mention_count": 2},
        ])
        assert [item.importance for item in items] == [0.0, 1.0]
