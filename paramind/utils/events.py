"""Session lifecycle notifications.

The orchestrator publishes session-started, session-completed and
session-failed events to whatever bus it was constructed with. The bus
here is an in-process implementation of that boundary; subscribers can
forward events anywhere (websocket, queue, log).
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from loguru import logger


class SessionEventKind(str, Enum):
    """Kinds of session lifecycle events."""

    STARTED = "session_started"
    COMPLETED = "session_completed"
    FAILED = "session_failed"


@dataclass(frozen=True)
class SessionEvent:
    """A single lifecycle notification."""

    kind: SessionEventKind
    session_id: str
    state: str
    timestamp: datetime = field(default_factory=datetime.now)
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "session_id": self.session_id,
            "state": self.state,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }


EventCallback = Callable[[SessionEvent], Awaitable[None] | None]


@runtime_checkable
class EventPublisher(Protocol):
    """Anything the orchestrator can publish lifecycle events to."""

    async def publish(self, event: SessionEvent) -> None: ...


class EventBus:
    """In-process publish/subscribe bus for session events.

    Usage:
        bus = EventBus()
        unsubscribe = bus.subscribe(print, kinds=[SessionEventKind.COMPLETED])
        await bus.publish(event)
        unsubscribe()

    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[EventCallback, frozenset[SessionEventKind] | None]] = []

    def subscribe(
        self,
        callback: EventCallback,
        kinds: Iterable[SessionEventKind] | None = None,
    ) -> Callable[[], None]:
        """Register a callback, optionally restricted to some event kinds.

        Returns:
            A function that removes the subscription.

        """
        entry = (callback, frozenset(kinds) if kinds is not None else None)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscribers)

    async def publish(self, event: SessionEvent) -> None:
        """Deliver an event to every matching subscriber.

        A failing subscriber is logged and skipped.
        """
        for callback, kinds in list(self._subscribers):
            if kinds is not None and event.kind not in kinds:
                continue
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Event subscriber failed for {event.kind.value}: {e}")
