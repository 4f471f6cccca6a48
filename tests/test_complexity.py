"""Unit tests for paramind/utils/complexity.py."""

from __future__ import annotations

import pytest

from paramind.utils.complexity import (
    ComplexityResult,
    analyze_complexity,
    classify_difficulty,
)


class TestComplexityResult:
    """Tests for ComplexityResult dataclass."""

    def test_dataclass_immutable(self) -> None:
        """ComplexityResult should be frozen (immutable)."""
        result = ComplexityResult(complexity_score=0.5, difficulty="moderate", factors=())
        with pytest.raises(AttributeError):
            result.complexity_score = 0.9  # type: ignore[misc]

    def test_to_dict(self) -> None:
        """to_dict() should return a JSON-serializable dict."""
        result = ComplexityResult(
            complexity_score=0.45678,
            difficulty="moderate",
            factors=("Service integration",),
        )
        assert result.to_dict() == {
            "complexity_score": 0.457,
            "difficulty": "moderate",
            "factors": ["Service integration"],
        }


class TestClassifyDifficulty:
    """Tests for difficulty buckets."""

    @pytest.mark.parametrize(
        ("score", "difficulty"),
        [
            (0.2, "simple"),
            (0.4, "simple"),
            (0.41, "moderate"),
            (0.6, "moderate"),
            (0.61, "complex"),
            (0.8, "complex"),
            (0.81, "very_complex"),
            (1.0, "very_complex"),
        ],
    )
    def test_thresholds(self, score: float, difficulty: str) -> None:
        """Bucket thresholds are exclusive lower bounds."""
        assert classify_difficulty(score) == difficulty


class TestAnalyzeComplexity:
    """Tests for analyze_complexity()."""

    def test_short_simple_text(self) -> None:
        """A short plain suggestion is simple."""
        result = analyze_complexity("Fix typo")
        assert result.difficulty == "simple"
        assert result.factors == ()
        assert result.complexity_score == pytest.approx(0.2 + len("Fix typo") / 1000)

    def test_empty_text(self) -> None:
        """Empty text keeps the base score."""
        assert analyze_complexity("").complexity_score == pytest.approx(0.2)

    def test_indicators_accumulate(self) -> None:
        """Each matched indicator adds its weight; the score is capped at 1.0."""
        result = analyze_complexity(
            "Refactor multiple files to use async callbacks with a sophisticated algorithm"
        )
        assert result.complexity_score == 1.0
        assert result.difficulty == "very_complex"
        assert set(result.factors) == {
            "Multiple file changes",
            "Self-described complexity",
            "Algorithmic changes",
            "Asynchronous operations",
        }

    def test_service_integration(self) -> None:
        """Integration work is detected case-insensitively."""
        result = analyze_complexity("Add INTEGRATION with billing")
        assert result.factors == ("Service integration",)
        assert result.difficulty == "complex"

    def test_length_factor_capped(self) -> None:
        """Length contributes at most 0.3."""
        short = analyze_complexity("word " * 300)
        longer = analyze_complexity("word " * 3000)
        assert short.complexity_score == pytest.approx(0.5)
        assert longer.complexity_score == pytest.approx(0.5)

    def test_long_words_raise_score(self) -> None:
        """Words of eight or more characters add 0.05 each."""
        plain = analyze_complexity("fix it")
        wordy = analyze_complexity("internationalize localization")
        expected = 0.2 + len("internationalize localization") / 1000 + 0.1
        assert wordy.complexity_score == pytest.approx(expected)
        assert wordy.complexity_score > plain.complexity_score

    def test_long_word_factor_capped(self) -> None:
        """The vocabulary factor contributes at most 0.2."""
        text = " ".join(["refactoring"] * 10)
        result = analyze_complexity(text)
        assert result.complexity_score == pytest.approx(0.2 + len(text) / 1000 + 0.2)
