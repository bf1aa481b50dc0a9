"""
Item Normalizer - Turn source records into ContextItems.

Each converter accepts record models or plain dicts, never fails on
missing optional fields, and never mutates its input.
"""

from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union
import logging

from pydantic import BaseModel

from memweave.context.models import (
    ContextCategory,
    ContextItem,
    EntityRecord,
    LearningRecord,
    MemoryRecord,
    MessageRecord,
    clamp_unit,
)
from memweave.context.token_manager import DEFAULT_ESTIMATOR

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

# User intent outranks the assistant's own prior output
ROLE_IMPORTANCE: Dict[str, float] = {
    "user": 0.8,
    "assistant": 0.6,
}
DEFAULT_ROLE_IMPORTANCE = 0.6

SEVERITY_IMPORTANCE: Dict[str, float] = {
    "critical": 0.9,
    "warning": 0.7,
    "info": 0.5,
}
DEFAULT_SEVERITY_IMPORTANCE = 0.5

DEFAULT_MEMORY_CATEGORY = "general"


def coerce_records(records: Optional[Iterable[Any]], model: Type[R]) -> List[R]:
    """Validate dicts into record models; records already of the type pass through."""
    result: List[R] = []
    for record in records or []:
        if isinstance(record, model):
            result.append(record)
        elif isinstance(record, BaseModel):
            result.append(model.model_validate(record.model_dump()))
        elif isinstance(record, dict):
            result.append(model.model_validate(record))
        else:
            logger.debug(f"Skipping {type(record).__name__} candidate, expected {model.__name__}")
    return result


def messages_to_context_items(
    messages: Optional[Iterable[Union[MessageRecord, Dict[str, Any]]]],
    estimator: str = DEFAULT_ESTIMATOR
) -> List[ContextItem]:
    """
    Convert conversation turns to context items.

    Text is ``"role: content"``. Importance is 0.8 for user turns and 0.6
    for assistant and any other role.
    """
    items = []
    for msg in coerce_records(messages, MessageRecord):
        metadata = {"id": msg.id, "session_id": msg.session_id, "role": msg.role}
        metadata.update(msg.metadata)
        items.append(ContextItem(
            category=ContextCategory.MESSAGE,
            text=f"{msg.role}: {msg.content}",
            importance=ROLE_IMPORTANCE.get(msg.role, DEFAULT_ROLE_IMPORTANCE),
            timestamp=msg.created_at,
            estimator=estimator,
            metadata=metadata,
        ))
    return items


def memories_to_context_items(
    memories: Optional[Iterable[Union[MemoryRecord, Dict[str, Any]]]],
    estimator: str = DEFAULT_ESTIMATOR
) -> List[ContextItem]:
    """
    Convert long-term memories to context items.

    The stored importance is used as is (clamped into [0, 1]).
    """
    items = []
    for mem in coerce_records(memories, MemoryRecord):
        category = mem.category or DEFAULT_MEMORY_CATEGORY
        metadata = {"id": mem.id, "category": category}
        metadata.update(mem.metadata)
        items.append(ContextItem(
            category=ContextCategory.MEMORY,
            text=f"[Memory: {category}] {mem.content}",
            importance=clamp_unit(mem.importance),
            timestamp=mem.created_at,
            estimator=estimator,
            metadata=metadata,
        ))
    return items


def learning_importance(learning: LearningRecord) -> float:
    """Explicit importance if present, otherwise derived from severity."""
    if learning.importance is not None:
        return clamp_unit(learning.importance)
    return SEVERITY_IMPORTANCE.get(learning.severity, DEFAULT_SEVERITY_IMPORTANCE)


def _format_learning(learning: LearningRecord) -> str:
    body = f"{learning.trigger} -> {learning.lesson}" if learning.trigger else learning.lesson
    text = f"[Learning: {learning.category}] {body}"
    if learning.action:
        text += f"\nAction: {learning.action}"
    return text


def learnings_to_context_items(
    learnings: Optional[Iterable[Union[LearningRecord, Dict[str, Any]]]],
    estimator: str = DEFAULT_ESTIMATOR
) -> List[ContextItem]:
    """
    Convert learnings to context items.

    Severity tiers map to importance: critical 0.9, warning 0.7, info 0.5.
    """
    items = []
    for learning in coerce_records(learnings, LearningRecord):
        metadata = {
            "id": learning.id,
            "severity": learning.severity,
            "applied": learning.applied_count,
        }
        metadata.update(learning.metadata)
        items.append(ContextItem(
            category=ContextCategory.LEARNING,
            text=_format_learning(learning),
            importance=learning_importance(learning),
            timestamp=learning.created_at,
            estimator=estimator,
            metadata=metadata,
        ))
    return items


def entities_to_context_items(
    entities: Optional[Iterable[Union[EntityRecord, Dict[str, Any]]]],
    estimator: str = DEFAULT_ESTIMATOR
) -> List[ContextItem]:
    """
    Convert entities to context items.

    Importance is the mention count relative to the most-mentioned entity
    in the same list; when nothing has been mentioned every entity scores 0.
    """
    records = coerce_records(entities, EntityRecord)
    max_mentions = max((entity.mention_count for entity in records), default=0)

    items = []
    for entity in records:
        text = f"[Entity: {entity.entity_type}] {entity.name}"
        if entity.description:
            text += f": {entity.description}"

        importance = entity.mention_count / max_mentions if max_mentions > 0 else 0.0

        items.append(ContextItem(
            category=ContextCategory.ENTITY,
            text=text,
            importance=importance,
            timestamp=entity.last_seen_at,
            estimator=estimator,
            metadata={
                "id": entity.id,
                "type": entity.entity_type,
                "mentions": entity.mention_count,
            },
        ))
    return items


__all__ = [
    "coerce_records",
    "ROLE_IMPORTANCE",
    "SEVERITY_IMPORTANCE",
    "messages_to_context_items",
    "memories_to_context_items",
    "learnings_to_context_items",
    "entities_to_context_items",
    "learning_importance",
]
