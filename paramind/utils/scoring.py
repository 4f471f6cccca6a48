"""Scoring primitives shared by the confidence stages.

Pattern, risk and complexity detection is plain signature matching
against free text, and historical similarity is word-set overlap.
Both are intentionally crude and serve as a stable, testable baseline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Words of this length or more count towards the vocabulary factor
LONG_WORD_PATTERN = re.compile(r"\w{8,}")

# Outcome records above this overlap count as "similar"
SIMILARITY_THRESHOLD = 0.3


@dataclass(frozen=True, slots=True)
class Signature:
    """A weighted text matcher with a human-readable reason."""

    pattern: re.Pattern[str]
    weight: float
    reason: str

    @classmethod
    def compile(cls, expression: str, weight: float, reason: str) -> Signature:
        """Build a case-insensitive signature from a regex expression."""
        return cls(re.compile(expression, re.IGNORECASE), weight, reason)

    def matches(self, text: str) -> bool:
        """Check whether the signature occurs anywhere in text."""
        return self.pattern.search(text) is not None


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def word_set(text: str) -> set[str]:
    """Lower-cased whitespace-separated words of text."""
    return set(text.lower().split())


def word_set_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity between the word sets of two texts.

    Returns 0.0 when both texts are empty.

    Example:
        >>> word_set_similarity("fix the login bug", "fix the signup bug")
        0.6

    """
    words1 = word_set(text1)
    words2 = word_set(text2)
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def long_word_count(text: str) -> int:
    """Count words with eight or more word characters."""
    return len(LONG_WORD_PATTERN.findall(text))


def count_occurrences(expression: str, text: str) -> int:
    """Count non-overlapping case-insensitive matches of a regex expression.

    Raises:
        re.error: If the expression is not a valid regex.

    """
    return sum(1 for _ in re.finditer(expression, text, re.IGNORECASE))
