"""Tests for async session storage."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest

from paramind.tools.reasoning_types import ReasoningSession, SessionState, new_session_id
from paramind.utils.errors import SessionNotFoundError
from paramind.utils.session import AsyncSessionManager, InMemorySessionStore, SessionStore


@dataclass
class MockState:
    """Mock session state for testing."""

    value: str = "initial"
    counter: int = 0


class MockManager(AsyncSessionManager[MockState]):
    """Mock manager for testing."""

    pass


def _session(started_at: datetime | None = None) -> ReasoningSession:
    return ReasoningSession(
        id=new_session_id(),
        problem="problem",
        selected_strategy_ids=("analytical",),
        paths=[],
        started_at=started_at or datetime.now(),
    )


class TestAsyncSessionManager:
    """Tests for AsyncSessionManager."""

    @pytest.mark.asyncio
    async def test_register_and_get(self) -> None:
        """Test registering and retrieving a session."""
        manager = MockManager()
        state = MockState(value="test")
        await manager.register_session("s1", state)

        assert await manager.get_session("s1") is state

    @pytest.mark.asyncio
    async def test_register_replaces(self) -> None:
        """Registering an existing id replaces its state."""
        manager = MockManager()
        await manager.register_session("s1", MockState(value="old"))
        await manager.register_session("s1", MockState(value="new"))

        assert (await manager.get_session("s1")).value == "new"

    @pytest.mark.asyncio
    async def test_get_session_not_found(self) -> None:
        """Test getting non-existent session raises error."""
        manager = MockManager()
        with pytest.raises(SessionNotFoundError) as exc_info:
            await manager.get_session("missing")
        assert exc_info.value.session_id == "missing"

    @pytest.mark.asyncio
    async def test_remove_session(self) -> None:
        """Test removing sessions returns the state or None."""
        manager = MockManager()
        state = MockState()
        await manager.register_session("s1", state)

        assert await manager.remove_session("s1") is state
        assert await manager.remove_session("s1") is None
        with pytest.raises(SessionNotFoundError):
            await manager.get_session("s1")

    @pytest.mark.asyncio
    async def test_locked_bulk_access(self) -> None:
        """locked() exposes every session while holding the lock."""
        manager = MockManager()
        await manager.register_session("s1", MockState())
        await manager.register_session("s2", MockState())

        async with manager.locked() as sessions:
            assert sorted(sessions) == ["s1", "s2"]
            for state in sessions.values():
                state.counter += 1

        assert (await manager.get_session("s2")).counter == 1

    @pytest.mark.asyncio
    async def test_locked_blocks_other_calls(self) -> None:
        """Other operations wait until the locked block exits."""
        manager = MockManager()
        await manager.register_session("s1", MockState())

        async with manager.locked():
            pending = asyncio.ensure_future(manager.get_session("s1"))
            await asyncio.sleep(0.01)
            assert not pending.done()

        assert (await asyncio.wait_for(pending, timeout=1)).value == "initial"


class TestInMemorySessionStore:
    """Tests for the default session store."""

    @pytest.mark.asyncio
    async def test_satisfies_protocol(self) -> None:
        """The in-memory store implements SessionStore."""
        assert isinstance(InMemorySessionStore(), SessionStore)

    @pytest.mark.asyncio
    async def test_crud(self) -> None:
        """Sessions can be created, read, updated and deleted."""
        store = InMemorySessionStore()
        session = _session()

        await store.create(session)
        assert await store.get(session.id) is session

        session.transition(SessionState.REASONING)
        await store.update(session)
        assert (await store.get(session.id)).state == SessionState.REASONING

        assert await store.delete(session.id) is True
        assert await store.delete(session.id) is False
        with pytest.raises(SessionNotFoundError):
            await store.get(session.id)

    @pytest.mark.asyncio
    async def test_list_sessions_oldest_first(self) -> None:
        """Listing orders sessions by start time."""
        store = InMemorySessionStore()
        now = datetime.now()
        newer = _session(now)
        older = _session(now - timedelta(minutes=1))
        await store.create(newer)
        await store.create(older)

        assert [s.id for s in await store.list_sessions()] == [older.id, newer.id]
