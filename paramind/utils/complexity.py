"""Complexity detection for proposed actions.

Scores how involved a suggestion is from its wording: a base score, the
weights of matched complexity indicators, a length factor and a
long-word density factor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from paramind.utils.scoring import Signature, clamp, long_word_count

Difficulty = Literal["simple", "moderate", "complex", "very_complex"]

BASE_COMPLEXITY = 0.2

COMPLEXITY_INDICATORS: tuple[Signature, ...] = (
    Signature.compile(
        r"multiple.*files|several.*files|\d+.*files", 0.3, "Multiple file changes"
    ),
    Signature.compile(
        r"complex|complicated|advanced|sophisticated", 0.4, "Self-described complexity"
    ),
    Signature.compile(r"integration|connect.*services|microservice", 0.5, "Service integration"),
    Signature.compile(r"algorithm|optimization|performance", 0.4, "Algorithmic changes"),
    Signature.compile(r"async|promise|callback|concurrent", 0.3, "Asynchronous operations"),
    Signature.compile(r"state.*management|redux|context", 0.3, "State management"),
)


@dataclass(frozen=True, slots=True)
class ComplexityResult:
    """Result of complexity analysis for a suggestion."""

    complexity_score: float
    difficulty: Difficulty
    factors: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "complexity_score": round(self.complexity_score, 3),
            "difficulty": self.difficulty,
            "factors": list(self.factors),
        }


def classify_difficulty(score: float) -> Difficulty:
    """Map a complexity score onto its difficulty bucket."""
    if score > 0.8:
        return "very_complex"
    if score > 0.6:
        return "complex"
    if score > 0.4:
        return "moderate"
    return "simple"


def analyze_complexity(text: str) -> ComplexityResult:
    """Estimate the complexity of a suggestion.

    Args:
        text: Suggestion text to analyze.

    Returns:
        ComplexityResult with a score clamped into [0, 1].

    Example:
        >>> analyze_complexity("Fix typo").difficulty
        'simple'

    """
    factors: list[str] = []
    score = BASE_COMPLEXITY

    for indicator in COMPLEXITY_INDICATORS:
        if indicator.matches(text):
            factors.append(indicator.reason)
            score += indicator.weight

    score += min(0.3, len(text) / 1000)
    score += min(0.2, long_word_count(text) * 0.05)

    score = clamp(score, 0.0, 1.0)
    return ComplexityResult(
        complexity_score=score,
        difficulty=classify_difficulty(score),
        factors=tuple(factors),
    )
