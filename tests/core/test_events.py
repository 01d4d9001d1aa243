"""
Tests for the in-memory event bus.
"""

from __future__ import annotations

import pytest

from bound_preview.core.events import Event, EventBus
from bound_preview.core.events.memory import InMemoryEventBus


class TestEventMatching:
    def test_exact(self):
        assert Event(event_type="preview.sync_failed", source="t").matches("preview.sync_failed")

    def test_wildcards(self):
        event = Event(event_type="preview.sync_failed", source="t")
        assert event.matches("*")
        assert event.matches("preview.*")
        assert not event.matches("previewer.*")
        assert not event.matches("preview.resource_synced")

    def test_glob_inside_name(self):
        event = Event(event_type="preview.sync_halted", source="t")
        assert event.matches("preview.sync_*")
        assert not event.matches("preview.resource_*")

    def test_events_are_immutable(self):
        event = Event(event_type="preview.sync_failed", source="t", session_id="s-1")
        with pytest.raises(AttributeError):
            event.session_id = "s-2"


class TestInMemoryEventBus:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryEventBus(), EventBus)

    @pytest.mark.asyncio
    async def test_priority_then_subscription_order(self):
        bus = InMemoryEventBus()
        calls: list[str] = []

        def make(name):
            async def handler(event):
                calls.append(name)

            return handler

        await bus.subscribe("preview.*", make("late-default"))
        await bus.subscribe("preview.*", make("first"), priority=0)
        await bus.subscribe("preview.*", make("second-default"))
        await bus.subscribe("other.*", make("never"))

        await bus.publish(Event(event_type="preview.sync_settled", source="t"))
        assert calls == ["first", "late-default", "second-default"]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_delivery(self):
        bus = InMemoryEventBus()
        seen = []

        async def broken(event):
            raise RuntimeError("boom")

        async def ok(event):
            seen.append(event.event_type)

        await bus.subscribe("*", broken, priority=0)
        await bus.subscribe("*", ok)
        await bus.publish(Event(event_type="preview.sync_failed", source="t"))
        assert seen == ["preview.sync_failed"]

    @pytest.mark.asyncio
    async def test_unsubscribe_and_close(self):
        bus = InMemoryEventBus()
        seen = []

        async def handler(event):
            seen.append(event)

        sub = await bus.subscribe("*", handler)
        assert bus.subscription_count == 1
        await bus.unsubscribe(sub)
        assert bus.subscription_count == 0

        await bus.subscribe("*", handler)
        await bus.close()
        await bus.publish(Event(event_type="x", source="t"))
        assert seen == []
