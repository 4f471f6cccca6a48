"""Tests for model response extraction."""

from __future__ import annotations

from paramind.tools.response_parser import (
    extract_confidence,
    extract_reasoning,
    extract_solution,
    parse_response,
)

STRUCTURED = """Reasoning:
1. The cache is rebuilt on every request
2. Rebuilding dominates latency

Solution: Memoize the cache build per process

Confidence: 85

Potential issues: stale entries after deploys"""


class TestExtractSolution:
    """Tests for solution extraction."""

    def test_labelled_solution(self) -> None:
        """Text after the label up to the blank line is the solution."""
        assert extract_solution(STRUCTURED) == "Memoize the cache build per process"

    def test_stops_at_confidence_line(self) -> None:
        """A following confidence line ends the solution."""
        assert extract_solution("Solution: use a cache\nConfidence: 80") == "use a cache"

    def test_case_insensitive(self) -> None:
        """Labels match regardless of case."""
        assert extract_solution("SOLUTION: Retry the job") == "Retry the job"

    def test_multiline_solution(self) -> None:
        """Single newlines stay inside the solution."""
        text = "Solution: first line\nsecond line\n\nConfidence: 40"
        assert extract_solution(text) == "first line\nsecond line"

    def test_fallback_to_whole_response(self) -> None:
        """Without a label the trimmed response is the solution."""
        assert extract_solution("  Just restart it.  ") == "Just restart it."


class TestExtractConfidence:
    """Tests for confidence extraction."""

    def test_labelled(self) -> None:
        """First integer after the label is used."""
        assert extract_confidence(STRUCTURED) == 85

    def test_clamped_high(self) -> None:
        """Values above 100 are clamped."""
        assert extract_confidence("Confidence: 140") == 100

    def test_default(self) -> None:
        """Missing confidence defaults to 50."""
        assert extract_confidence("no score here") == 50

    def test_percent_sign(self) -> None:
        """Trailing percent signs are ignored."""
        assert extract_confidence("confidence 72%") == 72


class TestExtractReasoning:
    """Tests for reasoning step extraction."""

    def test_labelled_steps(self) -> None:
        """Numbered steps under the reasoning label are split and trimmed."""
        assert extract_reasoning(STRUCTURED) == [
            "The cache is rebuilt on every request",
            "Rebuilding dominates latency",
        ]

    def test_unlabelled_keeps_first_five(self) -> None:
        """Without a label only the first five fragments are kept."""
        text = "Intro\n" + "\n".join(f"{i}. step {i}" for i in range(1, 9))
        steps = extract_reasoning(text)
        assert len(steps) == 5
        assert steps[0] == "Intro"
        assert steps[1] == "step 1"

    def test_plain_text(self) -> None:
        """A response without markers is a single step."""
        assert extract_reasoning("Only one thought") == ["Only one thought"]


class TestParseResponse:
    """Tests for the combined parser."""

    def test_parse_structured(self) -> None:
        """All three fields come from one response."""
        parsed = parse_response(STRUCTURED)
        assert parsed.solution == "Memoize the cache build per process"
        assert parsed.confidence == 85
        assert len(parsed.reasoning_steps) == 2

    def test_parse_free_text(self) -> None:
        """Unstructured text still yields a usable result."""
        parsed = parse_response("Increase the pool size.")
        assert parsed.solution == "Increase the pool size."
        assert parsed.confidence == 50
        assert parsed.reasoning_steps == ["Increase the pool size."]
