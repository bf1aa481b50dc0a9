"""
Token Manager - Deterministic token estimation for context assembly.

Provides utilities for:
- Character-density token estimation ("simple")
- Word-density token estimation ("accurate")
- A counter object bound to one of the heuristics

Both heuristics are pure, locale-independent and monotonic in the length
of the input, so the same text always costs the same number of tokens.
"""

from typing import Callable, Dict, Iterable, Optional
import math
import logging

logger = logging.getLogger(__name__)

# Approximate: ~4 characters per token for English
CHARS_PER_TOKEN = 4.0

# Approximate: ~0.75 words per token for English
WORDS_PER_TOKEN = 0.75

DEFAULT_ESTIMATOR = "simple"


def estimate_tokens(text: Optional[str]) -> int:
    """
    Estimate tokens from character count.

    Args:
        text: Text to estimate (None is treated as empty)

    Returns:
        ``ceil(len(text) / 4)``; 0 for empty input, at least 1 otherwise
    """
    if not text:
        return 0
    return max(1, math.ceil(len(text) / CHARS_PER_TOKEN))


def estimate_tokens_accurate(text: Optional[str]) -> int:
    """
    Estimate tokens from whitespace-separated word count.

    Args:
        text: Text to estimate (None is treated as empty)

    Returns:
        ``ceil(words / 0.75)``; 0 for empty or whitespace-only input
    """
    if not text:
        return 0
    # str.split() with no separator is locale-independent
    words = len(text.split())
    if words == 0:
        return 0
    return max(1, math.ceil(words / WORDS_PER_TOKEN))


ESTIMATORS: Dict[str, Callable[[Optional[str]], int]] = {
    "simple": estimate_tokens,
    "accurate": estimate_tokens_accurate,
}


def get_estimator(name: Optional[str] = None) -> Callable[[Optional[str]], int]:
    """
    Resolve an estimator by name.

    Unknown names fall back to the simple estimator.
    """
    if not name:
        return ESTIMATORS[DEFAULT_ESTIMATOR]

    estimator = ESTIMATORS.get(name.lower())
    if estimator is None:
        logger.warning(f"Unknown token estimator {name}, using {DEFAULT_ESTIMATOR}")
        return ESTIMATORS[DEFAULT_ESTIMATOR]
    return estimator


class TokenCounter:
    """
    Token counting bound to one estimation heuristic.

    Example:
        ```python
        counter = TokenCounter(method="accurate")
        tokens = counter.count_tokens("Hello, world!")

        if counter.fits(long_text, budget=500):
            ...
        ```
    """

    def __init__(self, method: str = DEFAULT_ESTIMATOR):
        """
        Initialize token counter.

        Args:
            method: Estimator name ("simple" or "accurate")
        """
        self.method = method if method and method.lower() in ESTIMATORS else DEFAULT_ESTIMATOR
        self._estimate = get_estimator(method)

    def count_tokens(self, text: Optional[str]) -> int:
        """
        Count tokens in text.

        Args:
            text: Text to count tokens for

        Returns:
            Estimated number of tokens
        """
        return self._estimate(text)

    def count_items(self, texts: Iterable[Optional[str]]) -> int:
        """Total estimated tokens across several texts."""
        return sum(self._estimate(text) for text in texts)

    def fits(self, text: Optional[str], budget: int) -> bool:
        """
        Check whether text fits in a token budget.

        Args:
            text: Text to check
            budget: Available tokens

        Returns:
            True if the estimate does not exceed the budget
        """
        return self._estimate(text) <= budget


__all__ = [
    "CHARS_PER_TOKEN",
    "WORDS_PER_TOKEN",
    "ESTIMATORS",
    "estimate_tokens",
    "estimate_tokens_accurate",
    "get_estimator",
    "TokenCounter",
]
