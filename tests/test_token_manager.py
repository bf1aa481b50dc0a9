"""Tests for token estimation."""
from memweave.context.token_manager import (
    TokenCounter,
    estimate_tokens,
    estimate_tokens_accurate,
    get_estimator,
)


class TestEstimateTokens:
    """Character-based estimator."""

    def test_empty_text_is_zero(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens(None) == 0

    def test_short_text_costs_at_least_one(self):
        assert estimate_tokens("a") == 1

    def test_rounds_up(self):
        assert estimate_tokens("Hello world") == 3
        assert estimate_tokens("x" * 100) == 25
        assert estimate_tokens("x" * 101) == 26

    def test_monotonic_in_length(self):
        counts = [estimate_tokens("x" * n) for n in range(200)]
        assert counts == sorted(counts)


class TestEstimateTokensAccurate:
    """Word-based estimator."""

    def test_empty_and_whitespace_are_zero(self):
        assert estimate_tokens_accurate("") == 0
        assert estimate_tokens_accurate("   \n\t") == 0

    def test_word_count_scaled(self):
        text = "The quick brown fox jumps over the lazy dog"
        assert estimate_tokens_accurate(text) == 12

    def test_single_word(self):
        assert estimate_tokens_accurate("one") == 2

    def test_monotonic_in_words(self):
        words = "lorem ipsum dolor sit amet consectetur adipiscing elit".split()
        counts = [estimate_tokens_accurate(" ".join(words[:n])) for n in range(len(words) + 1)]
        assert counts == sorted(counts)


class TestTokenCounter:
    """Estimator lookup and the counter wrapper."""

    def test_get_estimator_by_name(self):
        assert get_estimator("simple") is estimate_tokens
        assert get_estimator("ACCURATE") is estimate_tokens_accurate

    def test_unknown_estimator_falls_back_to_simple(self):
        assert get_estimator("tiktoken") is estimate_tokens

    def test_count_items(self):
        counter = TokenCounter()
        assert counter.count_items(["x" * 8, "x" * 4, ""]) == 3

    def test_fits(self):
        counter = TokenCounter("simple")
        assert counter.fits("x" * 40, 10)
        assert not counter.fits("x" * 41, 10)
