"""Parallel reasoning orchestrator.

Runs one problem through several reasoning strategies at once and picks
the final answer by weighted majority vote.

Lifecycle of a session:

1. ``start_session`` validates the strategy selection, stores the
   session and launches a background runner, returning immediately.
2. The runner executes every path concurrently. Each path owns its own
   cancellation signal and only ever mutates its own record.
3. Once every path is terminal the runner votes over the completed
   paths and marks the session completed (or failed when none finished).

``cancel_session`` may interrupt step 2; the runner then skips voting.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from loguru import logger

from paramind.tools.reasoning_types import (
    CANCELLED_ERROR,
    ReasoningPath,
    ReasoningSession,
    SessionMetadata,
    SessionState,
    VotingResult,
    new_path_id,
    new_session_id,
)
from paramind.tools.response_parser import parse_response
from paramind.tools.strategies import ReasoningStrategy, StrategyCatalog
from paramind.tools.voting import VotingEngine
from paramind.utils.errors import ReasoningException, SessionNotFoundError
from paramind.utils.events import EventBus, EventPublisher, SessionEvent, SessionEventKind
from paramind.utils.logging import log_context
from paramind.utils.session import InMemorySessionStore, SessionStore

if TYPE_CHECKING:
    from paramind.models.executor import AIExecutor

EMPTY_RESPONSE_ERROR = "Empty response from executor"

PROMPT_TEMPLATE = """{strategy_prompt}

Problem to solve:
{problem}

Please provide:
1. Your step-by-step reasoning
2. The solution
3. Your confidence level (0-100)
4. Any potential issues or edge cases
"""


def build_prompt(strategy: ReasoningStrategy, problem: str) -> str:
    """Combine a strategy's instructions with the problem statement."""
    return PROMPT_TEMPLATE.format(strategy_prompt=strategy.prompt_template, problem=problem)


def best_by_confidence(paths: Iterable[ReasoningPath]) -> ReasoningPath | None:
    """Highest-confidence path; earliest ended_at wins ties."""
    best: ReasoningPath | None = None
    for path in paths:
        if best is None or path.confidence > best.confidence:
            best = path
        elif path.confidence == best.confidence and (path.ended_at or datetime.max) < (
            best.ended_at or datetime.max
        ):
            best = path
    return best


class ReasoningOrchestrator:
    """Coordinates parallel reasoning sessions.

    All collaborators are injected; nothing here relies on module-level
    state, so independent orchestrators can coexist (one per test, for
    example).

    Usage:
        orchestrator = ReasoningOrchestrator(LLMExecutor(LLMClient()))
        session = await orchestrator.start_session("Why does login hang?")
        session = await orchestrator.wait_for_session(session.id)
        print(session.final_solution)

    """

    def __init__(
        self,
        executor: AIExecutor,
        *,
        store: SessionStore | None = None,
        catalog: StrategyCatalog | None = None,
        events: EventPublisher | None = None,
        voting_engine: VotingEngine | None = None,
    ) -> None:
        self.executor = executor
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self.catalog = catalog or StrategyCatalog.builtin()
        self.events: EventPublisher = events if events is not None else EventBus()
        self.voting_engine = voting_engine or VotingEngine(self.catalog)

        self._signals: dict[str, list[asyncio.Event]] = {}
        self._runners: dict[str, asyncio.Task[None]] = {}

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def _select_strategies(self, strategy_ids: Iterable[str] | None) -> list[ReasoningStrategy]:
        if strategy_ids is None:
            return self.catalog.require(self.catalog.default_ids)
        ids = list(dict.fromkeys(strategy_ids))
        if not ids:
            raise ReasoningException("At least one strategy must be selected")
        return self.catalog.require(ids)

    async def start_session(
        self,
        problem: str,
        strategy_ids: Iterable[str] | None = None,
        metadata: SessionMetadata | Mapping[str, Any] | None = None,
    ) -> ReasoningSession:
        """Start reasoning about a problem without waiting for the result.

        Args:
            problem: Problem statement sent to every strategy.
            strategy_ids: Strategies to run; the catalog defaults when None.
                Duplicates are collapsed, keeping the first occurrence.
            metadata: Why the session was started.

        Returns:
            The session, already in the ``reasoning`` state.

        Raises:
            ReasoningException: If the problem is blank or no strategy is selected.
            UnknownStrategyError: If any id is not in the catalog.

        """
        if not problem or not problem.strip():
            raise ReasoningException("Problem must not be empty")

        strategies = self._select_strategies(strategy_ids)
        if not isinstance(metadata, SessionMetadata):
            metadata = SessionMetadata.from_mapping(dict(metadata) if metadata else None)

        session = ReasoningSession(
            id=new_session_id(),
            problem=problem,
            selected_strategy_ids=tuple(s.id for s in strategies),
            paths=[
                ReasoningPath(id=new_path_id(), strategy_id=s.id, strategy_name=s.name)
                for s in strategies
            ],
            metadata=metadata,
        )

        await self.store.create(session)
        await self._publish(SessionEventKind.STARTED, session)
        if session.is_terminal:
            logger.info(f"Reasoning session {session.id} was cancelled before it started")
            return session

        session.transition(SessionState.REASONING)
        await self.store.update(session)

        signals = [asyncio.Event() for _ in session.paths]
        self._signals[session.id] = signals

        runner = asyncio.create_task(
            self._run_session(session, strategies, signals), name=f"reasoning-{session.id}"
        )
        self._runners[session.id] = runner
        runner.add_done_callback(lambda _task, sid=session.id: self._runners.pop(sid, None))

        logger.info(
            f"Started reasoning session {session.id} with "
            f"{len(strategies)} strategies: {', '.join(session.selected_strategy_ids)}"
        )
        return session

    async def get_session(self, session_id: str) -> ReasoningSession | None:
        """Current snapshot of a session, or None if unknown."""
        try:
            return await self.store.get(session_id)
        except SessionNotFoundError:
            return None

    async def wait_for_session(
        self, session_id: str, timeout: float | None = None
    ) -> ReasoningSession:
        """Wait for a session's runner to finish and return the session.

        Raises:
            SessionNotFoundError: If the session is unknown.
            TimeoutError: If the runner does not finish within timeout.

        """
        session = await self.store.get(session_id)
        runner = self._runners.get(session_id)
        if runner is not None:
            await asyncio.wait_for(asyncio.shield(runner), timeout)
            session = await self.store.get(session_id)
        return session

    async def list_sessions(self) -> list[ReasoningSession]:
        """All sessions currently held by the store."""
        return await self.store.list_sessions()

    async def cancel_session(self, session_id: str) -> bool:
        """Cancel a running session.

        Signals every path, fails the ones still pending or thinking with
        CANCELLED_ERROR and fails the session.

        Returns:
            False if the session is unknown or already finished.

        """
        session = await self.get_session(session_id)
        if session is None or session.is_terminal:
            return False

        for signal in self._signals.get(session_id, ()):
            signal.set()

        cancelled = sum(1 for path in session.paths if path.fail(CANCELLED_ERROR))
        session.transition(SessionState.FAILED)
        await self.store.update(session)
        await self._publish(SessionEventKind.FAILED, session, reason=CANCELLED_ERROR)

        logger.info(f"Cancelled reasoning session {session_id} ({cancelled} paths stopped)")
        return True

    async def cleanup(
        self,
        max_age: timedelta = timedelta(hours=1),
        now: datetime | None = None,
    ) -> list[str]:
        """Remove sessions that ended more than max_age ago.

        Returns:
            IDs of removed sessions.

        """
        cutoff = (now or datetime.now()) - max_age
        removed: list[str] = []
        for session in await self.store.list_sessions():
            if session.ended_at is not None and session.ended_at < cutoff:
                if await self.store.delete(session.id):
                    removed.append(session.id)
                self._signals.pop(session.id, None)

        if removed:
            logger.debug(f"Cleaned up {len(removed)} ended reasoning sessions")
        return removed

    async def shutdown(self) -> None:
        """Cancel every running session runner and wait for them to stop."""
        runners = list(self._runners.values())
        for runner in runners:
            runner.cancel()
        if runners:
            await asyncio.gather(*runners, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def _run_path(
        self,
        session: ReasoningSession,
        path: ReasoningPath,
        strategy: ReasoningStrategy,
        signal: asyncio.Event,
    ) -> None:
        with log_context(session_id=session.id, path_id=path.id, strategy_id=strategy.id):
            if signal.is_set() or path.is_terminal:
                return

            try:
                path.start()
                prompt = build_prompt(strategy, session.problem)
                path.progress = 30

                result = await self.executor.execute(prompt, signal)

                # Cancellation already recorded the failure
                if path.is_terminal:
                    return

                path.progress = 80
                if result.error is not None:
                    path.fail(result.error, result.tokens_used)
                    logger.warning(f"Reasoning path {path.id} failed: {result.error}")
                    return
                if not result.response_text.strip():
                    path.fail(EMPTY_RESPONSE_ERROR, result.tokens_used)
                    logger.warning(f"Reasoning path {path.id} returned an empty response")
                    return

                parsed = parse_response(result.response_text)
                path.complete(
                    solution=parsed.solution,
                    confidence=parsed.confidence,
                    reasoning_steps=parsed.reasoning_steps,
                    tokens_used=result.tokens_used,
                )
                logger.debug(
                    f"Reasoning path {path.id} completed with confidence {path.confidence}"
                )
            except asyncio.CancelledError:
                path.fail(CANCELLED_ERROR)
                raise
            except Exception as e:
                logger.exception(f"Reasoning path {path.id} failed unexpectedly")
                path.fail(str(e) or type(e).__name__)

    async def _run_session(
        self,
        session: ReasoningSession,
        strategies: list[ReasoningStrategy],
        signals: list[asyncio.Event],
    ) -> None:
        with log_context(session_id=session.id):
            try:
                await asyncio.gather(
                    *(
                        self._run_path(session, path, strategy, signal)
                        for path, strategy, signal in zip(
                            session.paths, strategies, signals, strict=True
                        )
                    )
                )
                session.total_tokens = session.sum_tokens()

                if session.state != SessionState.REASONING:
                    # Cancelled while paths were running
                    await self.store.update(session)
                    return

                completed = session.completed_paths()
                if not completed:
                    session.transition(SessionState.FAILED)
                    await self.store.update(session)
                    await self._publish(
                        SessionEventKind.FAILED, session, reason="all reasoning paths failed"
                    )
                    logger.warning(f"Reasoning session {session.id} failed: no path completed")
                    return

                session.transition(SessionState.VOTING)
                result = self.voting_engine.vote(completed)
                session.voting_result = result
                session.final_solution = self._resolve_final_solution(result, completed)
                session.transition(SessionState.COMPLETED)
                await self.store.update(session)
                await self._publish(SessionEventKind.COMPLETED, session)

                logger.info(
                    f"Reasoning session {session.id} completed: "
                    f"{len(completed)}/{len(session.paths)} paths, "
                    f"aggregate confidence {result.aggregate_confidence:.1f}"
                )
            except asyncio.CancelledError:
                await self._fail_session(session, CANCELLED_ERROR)
                raise
            except Exception as e:
                logger.exception(f"Reasoning session {session.id} failed unexpectedly")
                await self._fail_session(session, str(e) or type(e).__name__)
            finally:
                self._signals.pop(session.id, None)

    @staticmethod
    def _resolve_final_solution(
        result: VotingResult, completed: list[ReasoningPath]
    ) -> str | None:
        for path in completed:
            if path.solution == result.winning_solution:
                return path.solution
        best = best_by_confidence(completed)
        return best.solution if best is not None else None

    async def _fail_session(self, session: ReasoningSession, reason: str) -> None:
        if session.is_terminal:
            return
        for path in session.paths:
            path.fail(reason)
        session.total_tokens = session.sum_tokens()
        session.transition(SessionState.FAILED)
        try:
            await self.store.update(session)
            await self._publish(SessionEventKind.FAILED, session, reason=reason)
        except Exception as e:
            logger.error(f"Could not record failure of session {session.id}: {e}")

    async def _publish(
        self, kind: SessionEventKind, session: ReasoningSession, **payload: Any
    ) -> None:
        event = SessionEvent(
            kind=kind,
            session_id=session.id,
            state=session.state.value,
            payload={
                "strategy_ids": list(session.selected_strategy_ids),
                "final_solution": session.final_solution,
                **payload,
            },
        )
        try:
            await self.events.publish(event)
        except Exception as e:
            logger.warning(f"Failed to publish {kind.value} for session {session.id}: {e}")
