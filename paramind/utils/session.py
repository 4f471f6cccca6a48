"""Async session storage.

Provides the generic AsyncSessionManager plus the session store
boundary the orchestrator persists reasoning sessions through.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar, runtime_checkable

from paramind.utils.errors import SessionNotFoundError

if TYPE_CHECKING:
    from paramind.tools.reasoning_types import ReasoningSession

T = TypeVar("T")


class AsyncSessionManager(Generic[T]):
    """Async-native session registry guarded by an asyncio.Lock.

    Does NOT block the event loop during lock acquisition.
    """

    def __init__(self) -> None:
        """Initialize async session manager with empty sessions and async lock."""
        self._sessions: dict[str, T] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def locked(self) -> AsyncGenerator[dict[str, T], None]:
        """Async context manager yielding the sessions dict for bulk operations."""
        async with self._lock:
            yield self._sessions

    async def register_session(self, session_id: str, state: T) -> None:
        """Register or replace a session (async-safe)."""
        async with self._lock:
            self._sessions[session_id] = state

    async def remove_session(self, session_id: str) -> T | None:
        """Remove a session (async-safe).

        Returns:
            Removed session state, or None if not found.

        """
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def get_session(self, session_id: str) -> T:
        """Get session by ID (async-safe).

        Raises:
            SessionNotFoundError: If session doesn't exist.

        """
        async with self._lock:
            if session_id not in self._sessions:
                raise SessionNotFoundError(session_id)
            return self._sessions[session_id]


@runtime_checkable
class SessionStore(Protocol):
    """Persistence boundary for reasoning sessions."""

    async def create(self, session: ReasoningSession) -> None: ...

    async def get(self, session_id: str) -> ReasoningSession: ...

    async def update(self, session: ReasoningSession) -> None: ...

    async def delete(self, session_id: str) -> bool: ...

    async def list_sessions(self) -> list[ReasoningSession]: ...


class InMemorySessionStore(AsyncSessionManager["ReasoningSession"]):
    """Default session store holding sessions in process memory."""

    async def create(self, session: ReasoningSession) -> None:
        """Store a new session."""
        await self.register_session(session.id, session)

    async def get(self, session_id: str) -> ReasoningSession:
        """Fetch a session.

        Raises:
            SessionNotFoundError: If the session is unknown.

        """
        return await self.get_session(session_id)

    async def update(self, session: ReasoningSession) -> None:
        """Persist the current state of a session."""
        await self.register_session(session.id, session)

    async def delete(self, session_id: str) -> bool:
        """Delete a session, returning whether it existed."""
        return await self.remove_session(session_id) is not None

    async def list_sessions(self) -> list[ReasoningSession]:
        """All stored sessions, oldest first."""
        async with self.locked() as sessions:
            return sorted(sessions.values(), key=lambda s: s.started_at)
