"""
Live preview synchronizer.

Manifesto:
    Every keystroke in the pane must not become a REST request, and a slow
    response must never overwrite the preview with an older state than the
    one the user has since typed. Edits are debounced, coalesced per route,
    and responses are only applied when they belong to the newest request
    for their route.

State machine::

    IDLE ──edit──▶ DIRTY ──debounce──▶ SYNCING ──all responses──▶ IDLE
      ▲              ▲                    │
      │              └──edits queued──────┤
      │                                   ├──any failure──▶ FAILED ──edit──▶ DIRTY
      │                                   └──session expired──▶ HALTED
      └──────────────resume() (nothing pending)──────────────────────┘

- One request per unique route per cycle; a route already in flight is
  queued for the next cycle, never duplicated.
- Edits during ``SYNCING`` are recorded; when the cycle ends the synchronizer
  goes back to ``DIRTY`` and restarts the debounce.
- ``HALTED`` stops all scheduling until ``resume()``. Responses of requests
  that were in flight when the session halted are discarded as stale.
- ``close()`` is final; afterwards nothing is fetched or published.
  ``cancel()`` does the same from synchronous code without waiting.

Events published on the bus (source ``sync``):

- ``preview.resource_synced``: ``{route, body, status}``; ``body`` has the
  route's dirty values overlaid
- ``preview.sync_failed``: ``{route, error}``
- ``preview.sync_halted``: ``{error}``
- ``preview.sync_settled``: ``{state, routes}`` at the end of every cycle

Tags:
    sync, debounce, asyncio, state-machine, preview
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

from bound_preview.bindings.registry import BindingRegistry
from bound_preview.core.errors import SessionExpiredError, SyncError
from bound_preview.core.events import (
    RESOURCE_SYNCED,
    SYNC_FAILED,
    SYNC_HALTED,
    SYNC_SETTLED,
    Event,
    EventBus,
)
from bound_preview.core.logging import get_logger, push_context
from bound_preview.rest.models import FetchResult
from bound_preview.session import PreviewSession
from bound_preview.sync.fetchers import Fetcher, is_session_rejection

log = get_logger(__name__)

EVENT_SOURCE = "sync"


class SyncState(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    SYNCING = "syncing"
    FAILED = "failed"
    HALTED = "halted"


class LivePreviewSynchronizer:
    """Debounced, per-route coalescing re-fetcher for an embedded preview.

    Args:
        registry: Bindings and their dirty values
        fetcher: ``(method, route, context) → FetchResult`` boundary
        bus: Receives the ``preview.*`` events
        debounce_seconds: Quiet period before a cycle starts
        session: Checked before every request when given
    """

    def __init__(
        self,
        registry: BindingRegistry,
        fetcher: Fetcher,
        bus: EventBus,
        *,
        debounce_seconds: float = 0.25,
        session: PreviewSession | None = None,
    ) -> None:
        self.registry = registry
        self.fetcher = fetcher
        self.bus = bus
        self.debounce_seconds = debounce_seconds
        self.session = session

        self.state = SyncState.IDLE
        self.last_error: Exception | None = None
        self.requests_sent = 0

        self._pending: dict[str, None] = {}
        self._in_flight: dict[str, asyncio.Task[None]] = {}
        self._generation: dict[str, int] = {}
        self._cycle_routes: list[str] = []
        self._cycle_failures: dict[str, SyncError] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._finisher: asyncio.Task[None] | None = None
        self._closed = False
        self._cycle_done = asyncio.Event()
        self._cycle_done.set()

    # ── Public API ──────────────────────────────────────────────────────

    @property
    def pending_routes(self) -> list[str]:
        return list(self._pending)

    @property
    def in_flight_routes(self) -> list[str]:
        return list(self._in_flight)

    @property
    def closed(self) -> bool:
        return self._closed

    def edit(self, field_id: str, value: Any) -> None:
        """Record an edit and (re)start the debounce timer.

        Raises:
            UnknownBindingError: ``field_id`` is not registered
        """
        binding = self.registry.set_dirty(field_id, value)
        if self._closed:
            return
        self._pending.setdefault(binding.route, None)
        log.debug("sync.edit", field_id=field_id, route=binding.route, state=self.state.value)

        if self.state is SyncState.HALTED or self.state is SyncState.SYNCING:
            return
        self.state = SyncState.DIRTY
        self._schedule()

    def request_sync(self, route: str) -> None:
        """Queue a re-fetch of ``route`` without an edit (e.g. after publish)."""
        if self._closed:
            return
        self._pending.setdefault(route, None)
        if self.state in (SyncState.IDLE, SyncState.FAILED, SyncState.DIRTY):
            self.state = SyncState.DIRTY
            self._schedule()

    async def flush(self) -> SyncState:
        """Skip the debounce and wait until no cycle is pending or running."""
        while True:
            if self.state is SyncState.DIRTY:
                self._cancel_timer()
                self._start_cycle()
            if self.state is SyncState.SYNCING:
                await self._cycle_done.wait()
                continue
            return self.state

    def resume(self) -> None:
        """Leave ``HALTED`` after re-authentication.

        Raises:
            SessionExpiredError: the session is still not usable
        """
        if self._closed or self.state is not SyncState.HALTED:
            return
        if self.session is not None:
            self.session.ensure_active()
        self.last_error = None
        if self._pending:
            self.state = SyncState.DIRTY
            self._schedule()
        else:
            self.state = SyncState.IDLE
        log.info("sync.resumed", pending=len(self._pending))

    def cancel(self) -> list[asyncio.Task[None]]:
        """Stop for good without waiting: no timer, no pending routes, no requests.

        Returns the cancelled tasks so ``close`` can await them.
        """
        self._closed = True
        self._cancel_timer()
        self._pending.clear()
        tasks = list(self._in_flight.values())
        if self._finisher is not None:
            tasks.append(self._finisher)
            self._finisher = None
        for task in tasks:
            task.cancel()
        self._in_flight.clear()
        if self.state is not SyncState.HALTED:
            self.state = SyncState.IDLE
        self._cycle_done.set()
        return tasks

    async def close(self) -> None:
        """``cancel`` and wait for the cancelled requests to unwind."""
        tasks = self.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Scheduling ──────────────────────────────────────────────────────

    def _schedule(self) -> None:
        if self._closed:
            return
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if self.state is SyncState.DIRTY:
            self._start_cycle()

    def _start_cycle(self) -> None:
        if self._closed:
            return
        self.state = SyncState.SYNCING
        self._cycle_done.clear()
        self._cycle_routes = []
        self._cycle_failures = {}

        for route in list(self._pending):
            if route in self._in_flight:
                log.debug("sync.route_queued", route=route)
                continue
            del self._pending[route]
            self._start_request(route)

        if not self._in_flight:
            self._finisher = asyncio.get_running_loop().create_task(self._finish_cycle())

    def _start_request(self, route: str) -> None:
        generation = self._generation.get(route, 0) + 1
        self._generation[route] = generation
        self.requests_sent += 1
        self._cycle_routes.append(route)
        task = asyncio.get_running_loop().create_task(self._sync_route(route, generation))
        self._in_flight[route] = task

    # ── Per-route request ───────────────────────────────────────────────

    async def _sync_route(self, route: str, generation: int) -> None:
        token = push_context(route=route)
        try:
            await self._fetch_and_apply(route, generation)
        finally:
            token.restore()
            if self._in_flight.get(route) is asyncio.current_task():
                del self._in_flight[route]
            if not self._in_flight:
                await self._finish_cycle()

    async def _fetch_and_apply(self, route: str, generation: int) -> None:
        try:
            if self.session is not None:
                self.session.ensure_active()
            result = await self.fetcher("GET", route)
        except SessionExpiredError as e:
            await self._halt(e)
            return
        except asyncio.CancelledError:
            raise
        except SyncError as e:
            await self._record_failure(route, e)
            return
        except Exception as e:
            await self._record_failure(route, SyncError(f"Sync of {route} failed: {e}", cause=e))
            return

        if generation != self._generation.get(route):
            log.info("sync.stale_response_discarded", generation=generation)
            return

        if is_session_rejection(result):
            await self._halt(SessionExpiredError("Preview nonce rejected by server").with_context(route=route))
            return
        if result.is_error:
            message = result.body.get("message") if isinstance(result.body, dict) else str(result.body)
            error = SyncError(f"Sync of {route} returned {result.status}: {message}").with_context(
                http_status=result.status
            )
            await self._record_failure(route, error)
            return

        await self._apply(route, result)

    async def _emit(self, event_type: str, **payload: Any) -> None:
        session_id = self.session.session_id if self.session else None
        await self.bus.publish(Event(event_type, EVENT_SOURCE, payload, session_id=session_id))

    async def _apply(self, route: str, result: FetchResult) -> None:
        body = result.body
        for binding in self.registry.fields_for_route(route):
            binding.current_value = binding.server_value(result.body)
            body = binding.overlay(body)

        log.debug("sync.resource_synced", status=result.status)
        await self._emit(RESOURCE_SYNCED, route=route, body=body, status=result.status)

    async def _record_failure(self, route: str, error: SyncError) -> None:
        error.with_context(route=route)
        self._cycle_failures[route] = error
        self.last_error = error
        log.warning("sync.failed", **error.to_dict())
        await self._emit(SYNC_FAILED, route=route, error=error.to_dict())

    async def _halt(self, error: SessionExpiredError) -> None:
        if self.state is SyncState.HALTED:
            return
        self.state = SyncState.HALTED
        self.last_error = error
        self._cancel_timer()
        # Requests still in flight belong to the dead session; their
        # responses are discarded and their routes re-queued.
        for route in self._in_flight:
            self._generation[route] = self._generation.get(route, 0) + 1
            self._pending.setdefault(route, None)
        log.warning("sync.halted", **error.to_dict())
        await self._emit(SYNC_HALTED, error=error.to_dict())

    async def _finish_cycle(self) -> None:
        if self._cycle_done.is_set():
            return
        if self._closed:
            self._cycle_done.set()
            return
        routes = list(self._cycle_routes)

        if self.state is SyncState.SYNCING:
            if self._pending:
                self.state = SyncState.DIRTY
                self._schedule()
            elif self._cycle_failures:
                self.state = SyncState.FAILED
            else:
                self.state = SyncState.IDLE

        self._cycle_done.set()
        log.debug("sync.cycle.end", state=self.state.value, routes=routes)
        await self._emit(SYNC_SETTLED, state=self.state.value, routes=routes)
