"""Reasoning session types and data structures.

Holds the execution-state records shared by the orchestrator, the
voting engine and the MCP surface: paths, sessions, metadata and the
voting result. State changes go through ``transition()`` helpers that
only allow forward moves.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from paramind.utils.errors import InvalidTransitionError

# Fixed error text for paths stopped by a caller, distinguishable from organic failures
CANCELLED_ERROR = "cancelled by user"

# =============================================================================
# Enums
# =============================================================================


class PathState(str, Enum):
    """State of a single reasoning path."""

    PENDING = "pending"
    THINKING = "thinking"
    COMPLETED = "completed"
    FAILED = "failed"


class SessionState(str, Enum):
    """State of a parallel reasoning session."""

    INITIALIZING = "initializing"
    REASONING = "reasoning"
    VOTING = "voting"
    COMPLETED = "completed"
    FAILED = "failed"


TriggeredBy = Literal["manual", "auto", "escalation"]

PATH_TRANSITIONS: dict[PathState, frozenset[PathState]] = {
    PathState.PENDING: frozenset({PathState.THINKING, PathState.FAILED}),
    PathState.THINKING: frozenset({PathState.COMPLETED, PathState.FAILED}),
    PathState.COMPLETED: frozenset(),
    PathState.FAILED: frozenset(),
}

SESSION_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.INITIALIZING: frozenset({SessionState.REASONING, SessionState.FAILED}),
    SessionState.REASONING: frozenset({SessionState.VOTING, SessionState.FAILED}),
    SessionState.VOTING: frozenset({SessionState.COMPLETED, SessionState.FAILED}),
    SessionState.COMPLETED: frozenset(),
    SessionState.FAILED: frozenset(),
}


def new_session_id() -> str:
    """Generate a reasoning session id."""
    return f"pr_{uuid.uuid4()}"


def new_path_id() -> str:
    """Generate a reasoning path id."""
    return f"path_{uuid.uuid4()}"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ReasoningPath:
    """One strategy's attempt at a problem within a session.

    Only the execution unit that owns the path mutates it, except for
    cancellation which may fail a pending or thinking path.
    """

    id: str
    strategy_id: str
    strategy_name: str
    state: PathState = PathState.PENDING
    progress: int = 0  # advisory only
    solution: str | None = None
    confidence: int = 0
    reasoning_steps: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: datetime | None = None
    tokens_used: int | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        """True once the path has completed or failed."""
        return self.state in (PathState.COMPLETED, PathState.FAILED)

    @property
    def has_solution(self) -> bool:
        """True for completed paths holding a non-empty solution."""
        return self.state == PathState.COMPLETED and bool(self.solution)

    def transition(self, target: PathState) -> None:
        """Move to target state.

        Raises:
            InvalidTransitionError: If the move is not forward.

        """
        if target not in PATH_TRANSITIONS[self.state]:
            raise InvalidTransitionError("path", self.state.value, target.value)
        self.state = target

    def start(self) -> None:
        """pending -> thinking."""
        self.transition(PathState.THINKING)
        self.started_at = datetime.now()
        self.progress = 10

    def complete(
        self,
        solution: str,
        confidence: int,
        reasoning_steps: list[str],
        tokens_used: int | None = None,
    ) -> None:
        """thinking -> completed, recording the parsed response."""
        self.transition(PathState.COMPLETED)
        self.solution = solution
        self.confidence = confidence
        self.reasoning_steps = reasoning_steps
        self.tokens_used = tokens_used
        self.progress = 100
        self.ended_at = datetime.now()

    def fail(self, error: str, tokens_used: int | None = None) -> bool:
        """Mark the path failed unless it is already terminal.

        Returns:
            True if the path changed state.

        """
        if self.is_terminal:
            return False
        self.transition(PathState.FAILED)
        self.error = error
        if tokens_used is not None:
            self.tokens_used = tokens_used
        self.progress = 0
        self.ended_at = datetime.now()
        return True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "strategy_id": self.strategy_id,
            "strategy_name": self.strategy_name,
            "state": self.state.value,
            "progress": self.progress,
            "solution": self.solution,
            "confidence": self.confidence,
            "reasoning_steps": list(self.reasoning_steps),
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "tokens_used": self.tokens_used,
            "error": self.error,
        }


@dataclass
class SessionMetadata:
    """Caller-supplied context about why a session was started."""

    triggered_by: TriggeredBy = "manual"
    previous_attempts: int | None = None
    complexity: float | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> SessionMetadata:
        """Build metadata from a loose mapping, ignoring unknown keys."""
        if not data:
            return cls()
        triggered_by = data.get("triggered_by") or "manual"
        if triggered_by not in ("manual", "auto", "escalation"):
            raise ValueError(f"Invalid triggered_by: {triggered_by}")
        return cls(
            triggered_by=triggered_by,
            previous_attempts=data.get("previous_attempts"),
            complexity=data.get("complexity"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"triggered_by": self.triggered_by}
        if self.previous_attempts is not None:
            result["previous_attempts"] = self.previous_attempts
        if self.complexity is not None:
            result["complexity"] = self.complexity
        return result


@dataclass
class VotingResult:
    """Outcome of the weighted majority vote."""

    winning_solution: str
    vote_tally: dict[str, float]
    aggregate_confidence: float
    was_synthesized: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "winning_solution": self.winning_solution,
            "vote_tally": {k: round(v, 4) for k, v in self.vote_tally.items()},
            "aggregate_confidence": round(self.aggregate_confidence, 2),
            "was_synthesized": self.was_synthesized,
        }


@dataclass
class ReasoningSession:
    """State of a parallel reasoning session."""

    id: str
    problem: str
    selected_strategy_ids: tuple[str, ...]
    paths: list[ReasoningPath]
    state: SessionState = SessionState.INITIALIZING
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: datetime | None = None
    final_solution: str | None = None
    voting_result: VotingResult | None = None
    total_tokens: int = 0
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    @property
    def is_terminal(self) -> bool:
        """True once the session has completed or failed."""
        return self.state in (SessionState.COMPLETED, SessionState.FAILED)

    def transition(self, target: SessionState) -> None:
        """Move to target state, stamping ended_at on terminal states.

        Raises:
            InvalidTransitionError: If the move is not forward.

        """
        if target not in SESSION_TRANSITIONS[self.state]:
            raise InvalidTransitionError("session", self.state.value, target.value)
        self.state = target
        if self.is_terminal:
            self.ended_at = datetime.now()

    def completed_paths(self) -> list[ReasoningPath]:
        """Paths that finished with a usable solution, in path order."""
        return [p for p in self.paths if p.has_solution]

    def sum_tokens(self) -> int:
        """Total tokens reported across all paths."""
        return sum(p.tokens_used or 0 for p in self.paths)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "problem": self.problem,
            "selected_strategy_ids": list(self.selected_strategy_ids),
            "state": self.state.value,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "final_solution": self.final_solution,
            "voting_result": self.voting_result.to_dict() if self.voting_result else None,
            "total_tokens": self.total_tokens,
            "metadata": self.metadata.to_dict(),
            "paths": [p.to_dict() for p in self.paths],
        }
