"""Weighted majority voting over completed reasoning paths.

Each completed path votes for its exact solution text with
``strategy weight x confidence / 100``. Semantically equivalent answers
phrased differently are counted separately.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from loguru import logger

from paramind.tools.reasoning_types import ReasoningPath, VotingResult
from paramind.tools.strategies import StrategyCatalog

TIE_TOLERANCE = 1e-9


def _completion_key(path: ReasoningPath, index: int) -> tuple[datetime, int]:
    # Paths still missing ended_at sort after every finished one
    return (path.ended_at or datetime.max, index)


class VotingEngine:
    """Selects a winning solution from a set of reasoning paths.

    Usage:
        engine = VotingEngine(StrategyCatalog.builtin())
        result = engine.vote(session.paths)

    """

    def __init__(self, catalog: StrategyCatalog | None = None) -> None:
        self.catalog = catalog or StrategyCatalog.builtin()

    def adjusted_vote(self, path: ReasoningPath) -> float:
        """Weighted vote a single path contributes."""
        return self.catalog.weight_of(path.strategy_id) * (path.confidence / 100)

    def vote(self, paths: Iterable[ReasoningPath]) -> VotingResult:
        """Run the weighted vote.

        Only completed paths with a non-empty solution take part. Ties on
        score go to the solution whose earliest supporting path finished
        first.

        Returns:
            VotingResult; an empty result when no path qualifies.

        """
        voters = [p for p in paths if p.has_solution]
        if not voters:
            return VotingResult(winning_solution="", vote_tally={}, aggregate_confidence=0.0)

        tally: dict[str, float] = {}
        first_finish: dict[str, tuple[datetime, int]] = {}
        for index, path in enumerate(voters):
            solution = path.solution or ""
            tally[solution] = tally.get(solution, 0.0) + self.adjusted_vote(path)
            key = _completion_key(path, index)
            if solution not in first_finish or key < first_finish[solution]:
                first_finish[solution] = key

        best = max(tally.values())
        # Float sums of equal votes can differ in the last bits
        tied = [
            solution
            for solution, score in tally.items()
            if math.isclose(score, best, rel_tol=TIE_TOLERANCE, abs_tol=TIE_TOLERANCE)
        ]
        winner = min(tied, key=lambda solution: first_finish[solution])

        aggregate = sum(p.confidence for p in voters) / len(voters)

        logger.debug(
            f"Vote over {len(voters)} paths: {len(tally)} distinct solutions, "
            f"winner score {best:.3f}, aggregate {aggregate:.2f}"
        )
        return VotingResult(
            winning_solution=winner,
            vote_tally=tally,
            aggregate_confidence=aggregate,
            was_synthesized=False,
        )
