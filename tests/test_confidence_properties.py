"""Property-based tests for confidence scoring and voting.

Uses hypothesis to check the bounds and invariants that must hold for
any suggestion text or any set of completed paths.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from paramind.tools.confidence_engine import (
    ConfidenceContext,
    ConfidenceScoringEngine,
    confidence_level,
)
from paramind.tools.reasoning_types import ReasoningPath, new_path_id
from paramind.tools.strategies import StrategyCatalog
from paramind.tools.voting import VotingEngine
from paramind.utils.scoring import word_set_similarity

# =============================================================================
# Strategy Definitions
# =============================================================================

suggestion_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "P", "S", "Z")),
    max_size=2000,
)

file_strategy = st.lists(
    st.from_regex(r"[a-z]{1,8}\.[a-z]{1,4}", fullmatch=True), max_size=10
)

command_strategy = st.lists(st.text(max_size=40), max_size=5)

experience_strategy = st.sampled_from([None, "beginner", "intermediate", "advanced"])

STRATEGY_IDS = StrategyCatalog.builtin().ids()

path_strategy = st.tuples(
    st.sampled_from(STRATEGY_IDS),
    st.sampled_from(["S1", "S2", "S3"]),
    st.integers(min_value=0, max_value=100),
)


def _completed(strategy_id: str, solution: str, confidence: int) -> ReasoningPath:
    path = ReasoningPath(id=new_path_id(), strategy_id=strategy_id, strategy_name=strategy_id)
    path.start()
    path.complete(solution, confidence, [])
    return path


# =============================================================================
# Property Tests: Confidence Scoring
# =============================================================================


class TestConfidenceProperties:
    """Property tests for ConfidenceScoringEngine."""

    @given(
        text=suggestion_strategy,
        files=file_strategy,
        commands=command_strategy,
        experience=experience_strategy,
        error=st.one_of(st.none(), st.text(min_size=1, max_size=50)),
    )
    @settings(max_examples=100, deadline=None)
    def test_score_always_bounded(
        self,
        text: str,
        files: list[str],
        commands: list[str],
        experience: str | None,
        error: str | None,
    ) -> None:
        """Property: score stays within [0.05, 0.95] and matches its level."""
        engine = ConfidenceScoringEngine()
        analysis = engine.analyze_confidence(
            ConfidenceContext(
                suggestion_text=text,
                current_files=files,
                recent_commands=commands,
                error_context=error,
                user_experience_level=experience,  # type: ignore[arg-type]
            )
        )

        assert 0.05 <= analysis.score <= 0.95
        assert analysis.level in ("very_low", "low", "medium", "high", "very_high")
        assert -0.3 <= analysis.adjustment_factors.context <= 0.3
        assert analysis.recommendations

    @given(text=suggestion_strategy)
    @settings(max_examples=50, deadline=None)
    def test_deterministic(self, text: str) -> None:
        """Property: analysing the same text twice gives identical results."""
        engine = ConfidenceScoringEngine()
        assert engine.analyze_text(text).to_dict() == engine.analyze_text(text).to_dict()

    @given(score=st.floats(min_value=0.0, max_value=1.0, allow_nan=False))
    def test_level_monotonic(self, score: float) -> None:
        """Property: a higher score never maps to a lower level."""
        order = ["very_low", "low", "medium", "high", "very_high"]
        higher = min(1.0, score + 0.1)
        assert order.index(confidence_level(higher)) >= order.index(confidence_level(score))

    @given(a=st.text(max_size=200), b=st.text(max_size=200))
    def test_similarity_symmetric_and_bounded(self, a: str, b: str) -> None:
        """Property: word-set similarity is symmetric and within [0, 1]."""
        forward = word_set_similarity(a, b)
        assert forward == word_set_similarity(b, a)
        assert 0.0 <= forward <= 1.0


# =============================================================================
# Property Tests: Voting
# =============================================================================


class TestVotingProperties:
    """Property tests for VotingEngine."""

    @given(paths=st.lists(path_strategy, min_size=1, max_size=10))
    @settings(max_examples=100, deadline=None)
    def test_winner_has_highest_tally(self, paths: list[tuple[str, str, int]]) -> None:
        """Property: the winner is a voted solution with the maximum tally."""
        result = VotingEngine().vote([_completed(*p) for p in paths])

        assert result.winning_solution in {solution for _, solution, _ in paths}
        assert result.vote_tally[result.winning_solution] == max(result.vote_tally.values())

    @given(paths=st.lists(path_strategy, min_size=1, max_size=10))
    @settings(max_examples=100, deadline=None)
    def test_aggregate_is_mean_confidence(self, paths: list[tuple[str, str, int]]) -> None:
        """Property: aggregate confidence is the plain mean of path confidences."""
        result = VotingEngine().vote([_completed(*p) for p in paths])
        expected = sum(c for _, _, c in paths) / len(paths)
        assert result.aggregate_confidence == pytest.approx(expected)
        assert 0 <= result.aggregate_confidence <= 100
