"""
Single-process event bus.

Subscriptions are kept sorted by ``(priority, sequence)`` when they are
added, so ``publish`` only filters. A handler that raises is logged and the
remaining handlers still see the event.
"""

from __future__ import annotations

import bisect
import itertools
from typing import NamedTuple

from bound_preview.core.events import DEFAULT_PRIORITY, Event, EventHandler
from bound_preview.core.logging import get_logger

__all__ = ["InMemoryEventBus"]

log = get_logger("bound_preview.events")


class _Subscription(NamedTuple):
    priority: int
    sequence: int
    id: str
    pattern: str
    handler: EventHandler


class InMemoryEventBus:
    """Ordered in-process delivery for one preview manager.

    Example::

        bus = InMemoryEventBus()
        await bus.subscribe("preview.*", refresh_frame)
        await bus.subscribe(SYNC_FAILED, show_notice, priority=0)
        # a sync failure reaches show_notice before refresh_frame
    """

    def __init__(self) -> None:
        self._ordered: list[_Subscription] = []
        self._counter = itertools.count(1)
        self._closed = False

    @property
    def subscription_count(self) -> int:
        return len(self._ordered)

    async def subscribe(self, event_type: str, handler: EventHandler, *, priority: int = DEFAULT_PRIORITY) -> str:
        sequence = next(self._counter)
        sub = _Subscription(priority, sequence, f"sub-{sequence}", event_type, handler)
        bisect.insort(self._ordered, sub, key=lambda s: (s.priority, s.sequence))
        return sub.id

    async def unsubscribe(self, subscription_id: str) -> None:
        self._ordered = [sub for sub in self._ordered if sub.id != subscription_id]

    async def publish(self, event: Event) -> None:
        if self._closed:
            log.debug("events.dropped", event_type=event.event_type)
            return
        # Snapshot so handlers may (un)subscribe while we deliver.
        for sub in [s for s in self._ordered if event.matches(s.pattern)]:
            try:
                await sub.handler(event)
            except Exception as e:
                log.warning(
                    "events.handler_failed",
                    subscription=sub.id,
                    event_type=event.event_type,
                    error_type=type(e).__name__,
                    error=str(e),
                )

    async def close(self) -> None:
        self._closed = True
        self._ordered.clear()
