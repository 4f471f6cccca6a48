"""pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from unittest.mock import MagicMock

import pytest

from paramind.models.executor import ExecutionResult
from paramind.models.pattern_store import SQLitePatternStore
from paramind.tools.confidence_engine import ConfidenceScoringEngine
from paramind.tools.orchestrator import ReasoningOrchestrator
from paramind.tools.reasoning_types import CANCELLED_ERROR
from paramind.tools.strategies import StrategyCatalog
from paramind.utils.events import EventBus, SessionEvent

ScriptedReply = str | ExecutionResult | Exception


class ScriptedExecutor:
    """In-process executor answering per strategy.

    Replies are keyed by strategy id; the strategy is recognised from its
    prompt template inside the prompt. A reply may be response text, a
    full ExecutionResult or an exception to raise.
    """

    def __init__(
        self,
        replies: dict[str, ScriptedReply] | None = None,
        *,
        default: ScriptedReply = "Solution: use a cache\nConfidence: 80",
        delays: dict[str, float] | None = None,
        block_until_cancelled: bool = False,
        catalog: StrategyCatalog | None = None,
    ) -> None:
        self.replies = replies or {}
        self.default = default
        self.delays = delays or {}
        self.block_until_cancelled = block_until_cancelled
        self.catalog = catalog or StrategyCatalog.builtin()
        self.prompts: list[str] = []
        self.started = asyncio.Event()

    def _strategy_for(self, prompt: str) -> str | None:
        for strategy in self.catalog:
            if prompt.startswith(strategy.prompt_template):
                return strategy.id
        return None

    async def execute(self, prompt: str, cancel: asyncio.Event) -> ExecutionResult:
        self.prompts.append(prompt)
        self.started.set()
        strategy_id = self._strategy_for(prompt)

        if self.block_until_cancelled:
            await cancel.wait()
            return ExecutionResult(error=CANCELLED_ERROR)

        delay = self.delays.get(strategy_id or "", 0.0)
        if delay:
            await asyncio.sleep(delay)

        reply = self.replies.get(strategy_id or "", self.default)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, ExecutionResult):
            return reply
        return ExecutionResult(response_text=reply, tokens_used=100)


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up mock environment variables for testing."""
    if not os.getenv("OPENAI_API_KEY"):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test-mock-key-for-testing")


@pytest.fixture
def catalog() -> StrategyCatalog:
    """Built-in strategy catalog."""
    return StrategyCatalog.builtin()


@pytest.fixture
def executor() -> ScriptedExecutor:
    """Executor answering every strategy with the same solution."""
    return ScriptedExecutor()


@pytest.fixture
def event_log() -> list[SessionEvent]:
    """Collects events published on the bus fixture."""
    return []


@pytest.fixture
def event_bus(event_log: list[SessionEvent]) -> EventBus:
    """Event bus recording every event into event_log."""
    bus = EventBus()
    bus.subscribe(event_log.append)
    return bus


@pytest.fixture
def orchestrator(executor: ScriptedExecutor, event_bus: EventBus) -> ReasoningOrchestrator:
    """Orchestrator wired to the scripted executor and recording bus."""
    return ReasoningOrchestrator(executor, events=event_bus)


@pytest.fixture
def pattern_store() -> Generator[SQLitePatternStore, None, None]:
    """In-memory pattern store."""
    store = SQLitePatternStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def engine(pattern_store: SQLitePatternStore) -> ConfidenceScoringEngine:
    """Confidence engine backed by the in-memory store."""
    return ConfidenceScoringEngine(pattern_store)


@pytest.fixture
def mock_llm_response() -> MagicMock:
    """Create a mock chat completion response."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = "Solution: restart the worker\nConfidence: 70"
    response.usage.total_tokens = 321
    return response


@pytest.fixture
def make_executor() -> type[ScriptedExecutor]:
    """Factory for executors with custom per-strategy replies."""
    return ScriptedExecutor
