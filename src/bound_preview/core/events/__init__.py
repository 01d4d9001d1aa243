"""Preview events and the bus contract.

The synchronizer announces what happened to a route (``preview.resource_synced``,
``preview.sync_failed``), to the whole session (``preview.sync_halted``) and to
a debounce cycle (``preview.sync_settled``). The preview client, the HTTP layer
and tests listen through a bus instead of importing the synchronizer.

Handlers run one after another: lowest ``priority`` first, then in the order
they subscribed.

Usage::

    bus = InMemoryEventBus()

    async def render(event: Event) -> None:
        frame.update(event.payload["route"], event.payload["body"])

    await bus.subscribe(RESOURCE_SYNCED, render)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from fnmatch import fnmatchcase
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "DEFAULT_PRIORITY",
    "Event",
    "EventBus",
    "EventHandler",
    "RESOURCE_SYNCED",
    "SYNC_FAILED",
    "SYNC_HALTED",
    "SYNC_SETTLED",
]

RESOURCE_SYNCED = "preview.resource_synced"
SYNC_FAILED = "preview.sync_failed"
SYNC_HALTED = "preview.sync_halted"
SYNC_SETTLED = "preview.sync_settled"

DEFAULT_PRIORITY = 10


@dataclass(frozen=True)
class Event:
    """Something the preview wants its listeners to know about.

    ``session_id`` ties the event to the preview session that produced it;
    it is ``None`` for events raised outside a session.
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    session_id: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def matches(self, pattern: str) -> bool:
        """Glob-match the event type: ``*``, ``preview.*`` or an exact name."""
        return fnmatchcase(self.event_type, pattern)


EventHandler = Callable[[Event], Awaitable[None]]


@runtime_checkable
class EventBus(Protocol):
    """What the synchronizer and manager need from a bus."""

    async def publish(self, event: Event) -> None: ...

    async def subscribe(self, event_type: str, handler: EventHandler, *, priority: int = DEFAULT_PRIORITY) -> str:
        """Register ``handler`` for types matching ``event_type``; returns a subscription id."""
        ...

    async def unsubscribe(self, subscription_id: str) -> None: ...

    async def close(self) -> None: ...
