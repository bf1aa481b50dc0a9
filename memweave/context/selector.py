"""
Selector - Pick the highest-value items that fit a token ceiling.

Scoring factors:
- Stored importance
- Recency (exponential decay of item age)

Selection is greedy with skip: items are taken in score order and any
item that would overflow the ceiling is passed over while smaller items
further down are still considered. This is not an optimal knapsack
solution; it is deterministic and close to linear in the number of items.
"""

from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union
from datetime import datetime, timezone
import math
import logging

from memweave.core.config import MemweaveSettings, resolve_settings
from memweave.context.models import ContextItem, SelectionWeights, coerce_datetime, coerce_float, coerce_int

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


class ScoredItem(NamedTuple):
    """A context item with its composite and recency scores."""
    item: ContextItem
    score: float
    recency: float


def resolve_weights(
    weights: Optional[Union[SelectionWeights, Dict[str, Any]]] = None,
    config: Optional[MemweaveSettings] = None
) -> SelectionWeights:
    """Weights as given, or the configured defaults."""
    if isinstance(weights, SelectionWeights):
        return weights

    settings = resolve_settings(config)
    defaults = settings.selection
    weights = weights or {}
    return SelectionWeights(
        importance_weight=coerce_float(weights.get("importance_weight"), defaults.importance_weight),
        recency_weight=coerce_float(weights.get("recency_weight"), defaults.recency_weight),
    )


def recency_score(
    timestamp: Optional[datetime],
    now: datetime,
    decay_days: float
) -> float:
    """
    Calculate recency score (1.0 = just now, approaching 0.0 with age).

    ``exp(-age_days / decay_days)``. Timestamps in the future count as
    age 0; a missing timestamp scores 0.
    """
    if timestamp is None:
        return 0.0
    age_days = max(0.0, (now - timestamp).total_seconds() / SECONDS_PER_DAY)
    return math.exp(-age_days / decay_days)


def _sort_key(indexed: tuple) -> tuple:
    index, scored = indexed
    timestamp = scored.item.timestamp
    newest_first = -timestamp.timestamp() if timestamp is not None else math.inf
    return (-scored.score, newest_first, index)


def score_context_items(
    items: Iterable[ContextItem],
    weights: Optional[Union[SelectionWeights, Dict[str, Any]]] = None,
    now: Optional[datetime] = None,
    decay_days: Optional[float] = None,
    config: Optional[MemweaveSettings] = None
) -> List[ScoredItem]:
    """
    Rank items by composite score.

    Composite = importance_weight * importance + recency_weight * recency.
    Ties go to the more recent item, then to input order, so the ranking
    is a total order and repeated calls agree.

    Args:
        items: Candidate items
        weights: Importance/recency weights (configured defaults if None)
        now: Reference time for recency (current UTC time if None)
        decay_days: Recency decay constant in days (configured default if None)
        config: Settings to read defaults from

    Returns:
        Scored items, best first
    """
    settings = resolve_settings(config)
    weights = resolve_weights(weights, settings)
    now = coerce_datetime(now) or datetime.now(timezone.utc)

    decay_days = coerce_float(decay_days, settings.selection.recency_decay_days)
    if decay_days <= 0:
        decay_days = settings.selection.recency_decay_days

    scored = []
    for item in items or []:
        recency = recency_score(item.timestamp, now, decay_days)
        score = weights.importance_weight * item.importance + weights.recency_weight * recency
        scored.append(ScoredItem(item, score, recency))

    ranked = sorted(enumerate(scored), key=_sort_key)
    return [entry for _, entry in ranked]


def select_context_items(
    items: Iterable[ContextItem],
    token_budget: int,
    weights: Optional[Union[SelectionWeights, Dict[str, Any]]] = None,
    now: Optional[datetime] = None,
    decay_days: Optional[float] = None,
    config: Optional[MemweaveSettings] = None
) -> List[ContextItem]:
    """
    Select items within a token ceiling.

    Args:
        items: Candidate items of one category
        token_budget: Ceiling for the summed token counts
        weights: Importance/recency weights
        now: Reference time for recency
        decay_days: Recency decay constant in days
        config: Settings to read defaults from

    Returns:
        Accepted items in score-descending order; their token counts sum
        to at most ``token_budget``

    Example:
        ```python
        selected = select_context_items(
            items,
            token_budget=budget.memories,
            weights=SelectionWeights(importance_weight=0.9, recency_weight=0.1)
        )
        ```
    """
    budget = max(0, coerce_int(token_budget, 0))
    ranked = score_context_items(items, weights, now, decay_days, config)

    selected = []
    total_tokens = 0

    for scored in ranked:
        if total_tokens + scored.item.token_count <= budget:
            selected.append(scored.item)
            total_tokens += scored.item.token_count

    if len(selected) < len(ranked):
        logger.debug(
            f"Selected {len(selected)}/{len(ranked)} items "
            f"({total_tokens}/{budget} tokens)"
        )

    return selected


__all__ = [
    "ScoredItem",
    "recency_score",
    "resolve_weights",
    "score_context_items",
    "select_context_items",
]
