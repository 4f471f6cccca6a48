"""Tests for paramind/utils/scoring.py text matching primitives."""

from __future__ import annotations

import re

import pytest

from paramind.utils.scoring import (
    Signature,
    clamp,
    count_occurrences,
    long_word_count,
    word_set,
    word_set_similarity,
)


class TestSignature:
    """Tests for weighted signatures."""

    def test_case_insensitive(self) -> None:
        """Compiled signatures ignore case."""
        signature = Signature.compile(r"drop|delete", 0.9, "Destructive")
        assert signature.matches("DROP TABLE")
        assert signature.matches("please delete it")
        assert not signature.matches("add a column")

    def test_fields(self) -> None:
        """Weight and reason are kept alongside the pattern."""
        signature = Signature.compile(r"x", 0.3, "Reason")
        assert signature.weight == 0.3
        assert signature.reason == "Reason"
        assert signature.pattern.flags & re.IGNORECASE


class TestClamp:
    """Tests for clamp()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(-1.0, 0.0), (0.5, 0.5), (2.0, 1.0)],
    )
    def test_clamp(self, value: float, expected: float) -> None:
        """Values are limited to the given range."""
        assert clamp(value, 0.0, 1.0) == expected


class TestWordSetSimilarity:
    """Tests for word-set overlap."""

    def test_partial_overlap(self) -> None:
        """Three shared words out of five distinct."""
        assert word_set_similarity("fix the login bug", "fix the signup bug") == pytest.approx(0.6)

    def test_identical(self) -> None:
        """Identical texts score 1.0."""
        assert word_set_similarity("bump version", "bump version") == 1.0

    def test_case_folded(self) -> None:
        """Comparison is case-insensitive."""
        assert word_set_similarity("Fix Bug", "fix bug") == 1.0

    def test_disjoint(self) -> None:
        """No shared words scores 0.0."""
        assert word_set_similarity("alpha beta", "gamma delta") == 0.0

    def test_both_empty(self) -> None:
        """Two empty texts are not similar."""
        assert word_set_similarity("", "   ") == 0.0

    def test_one_empty(self) -> None:
        """An empty text shares nothing."""
        assert word_set_similarity("", "something") == 0.0

    def test_word_set_splits_on_whitespace(self) -> None:
        """Punctuation stays attached to words."""
        assert word_set("Fix  the\tbug.") == {"fix", "the", "bug."}


class TestCounting:
    """Tests for occurrence and long-word counts."""

    def test_long_word_count(self) -> None:
        """Only words of eight or more characters count."""
        assert long_word_count("internationalization is complicated") == 2
        assert long_word_count("short words only") == 0

    def test_count_occurrences(self) -> None:
        """Matches are counted case-insensitively."""
        assert count_occurrences("cache", "Cache cache CACHE") == 3
        assert count_occurrences("missing", "nothing here") == 0

    def test_count_occurrences_invalid_regex(self) -> None:
        """Invalid expressions raise re.error."""
        with pytest.raises(re.error):
            count_occurrences("([", "text")
