"""
Preview manager — the composition root of a preview.

Manifesto:
    Every component that needs the preview session gets it from one explicit
    object instead of a process-wide global: the dispatcher asks it whether a
    preview is active, the fetcher asks it for the session to validate, the
    HTTP layer asks it for bootstrap blobs.

The manager owns:

- ``server`` (RestServer) with the ``dispatcher`` installed on it
- ``registry`` (BindingRegistry)
- ``bus`` (event bus) and the ``synchronizer`` of the current session
- the current ``session`` and the ``NonceIssuer`` that signs its nonces

Usage::

    manager = PreviewManager(settings, capabilities={"edit_pages"})
    register_collection_routes(manager.server, pages)
    manager.start_session("twentytwenty")
    manager.register_dynamic_settings({"rest_resource[pages][4][title]": "New"})
    await manager.synchronizer.flush()
    report = await manager.publish()

Tags:
    manager, composition-root, session, bootstrap, publish
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from bound_preview.bindings.binding import ResourceBinding
from bound_preview.bindings.controls import Control, Section, build_controls
from bound_preview.bindings.kinds import DEFAULT_NAMESPACE, is_rest_field_id, route_for_field_id
from bound_preview.bindings.registry import BindingRegistry
from bound_preview.core.errors import DispatchError, SessionExpiredError
from bound_preview.core.events import EventBus
from bound_preview.core.events.memory import InMemoryEventBus
from bound_preview.core.logging import bind_context, get_logger, log_step
from bound_preview.core.settings import BoundPreviewSettings, get_settings
from bound_preview.rest.dispatcher import ContextElevatingDispatcher
from bound_preview.rest.models import DispatchContext, RestRequest
from bound_preview.rest.server import RestServer
from bound_preview.session import Clock, NonceIssuer, PreviewSession
from bound_preview.sync.fetchers import Fetcher, ServerFetcher
from bound_preview.sync.synchronizer import LivePreviewSynchronizer

log = get_logger(__name__)


@dataclass
class PublishReport:
    """Outcome of ``PreviewManager.publish``."""

    committed: list[str] = field(default_factory=list)
    failed: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class PreviewManager:
    """Explicit preview session object shared by all components."""

    def __init__(
        self,
        settings: BoundPreviewSettings | None = None,
        *,
        server: RestServer | None = None,
        bus: EventBus | None = None,
        fetcher: Fetcher | None = None,
        capabilities: Iterable[str] = (),
        namespace: str = DEFAULT_NAMESPACE,
        clock: Clock = time.time,
    ) -> None:
        self.settings = settings or get_settings()
        self.server = server or RestServer()
        self.bus: EventBus = bus or InMemoryEventBus()
        self.registry = BindingRegistry()
        self.capabilities = frozenset(capabilities)
        self.namespace = namespace
        self.clock = clock
        self.issuer = NonceIssuer(
            self.settings.nonce_secret,
            self.settings.nonce_lifetime_seconds,
            clock=clock,
        )
        self.session: PreviewSession | None = None

        self.dispatcher = ContextElevatingDispatcher(
            self.server,
            is_preview=self.is_preview,
            context_header=self.settings.context_header,
        )
        self.dispatcher.install()

        self.fetcher: Fetcher = fetcher or ServerFetcher(
            self.server,
            capabilities=self.capabilities,
            session=lambda: self.session,
        )
        self._synchronizer: LivePreviewSynchronizer | None = None

    # ── Session ─────────────────────────────────────────────────────────

    def is_preview(self, request: RestRequest | None = None) -> bool:
        """True while a session is active and ``request`` (if given) was made inside it."""
        if self.session is None or not self.session.is_active:
            return False
        return request is None or request.preview

    def require_session(self) -> PreviewSession:
        if self.session is None:
            raise SessionExpiredError("No preview session is active")
        self.session.ensure_active()
        return self.session

    def start_session(
        self,
        stylesheet: str | None = None,
        snapshot: Mapping[str, Any] | None = None,
    ) -> PreviewSession:
        """Start a new session, replacing any current one.

        The old session's synchronizer is cancelled so none of its requests or
        events outlive the session.
        """
        if self._synchronizer is not None:
            self._synchronizer.cancel()
            self._synchronizer = None
        if self.session is not None:
            self.session.end()
            self.registry.discard_all()
        self.session = PreviewSession.start(
            stylesheet or self.settings.default_stylesheet,
            self.issuer,
            ttl_seconds=self.settings.session_ttl_seconds,
            snapshot=snapshot,
            clock=self.clock,
        )
        self._synchronizer = None
        bind_context(session_id=self.session.session_id, stylesheet=self.session.stylesheet)
        return self.session

    async def end_session(self) -> None:
        """End the session and discard every unsaved edit."""
        if self._synchronizer is not None:
            await self._synchronizer.close()
            self._synchronizer = None
        self.registry.discard_all()
        if self.session is not None:
            self.session.end()

    def verify_nonce(self, nonce: str | None) -> bool:
        """True when ``nonce`` belongs to the active session."""
        if self.session is None:
            return False
        try:
            self.session.check_nonce(nonce)
        except SessionExpiredError:
            return False
        return True

    @property
    def synchronizer(self) -> LivePreviewSynchronizer:
        """Synchronizer bound to the current session (created on first use)."""
        session = self.require_session()
        if self._synchronizer is None:
            self._synchronizer = LivePreviewSynchronizer(
                self.registry,
                self.fetcher,
                self.bus,
                debounce_seconds=self.settings.debounce_seconds,
                session=session,
            )
        return self._synchronizer

    # ── Bindings ────────────────────────────────────────────────────────

    def register_dynamic_settings(self, posted_values: Mapping[str, Any]) -> list[ResourceBinding]:
        """Bind every posted REST field id and record its value as dirty.

        Field ids that are not REST resource ids are ignored.
        """
        self.require_session()
        bindings = []
        for field_id, value in posted_values.items():
            if not is_rest_field_id(field_id):
                continue
            if field_id not in self.registry:
                route, sub_path = route_for_field_id(field_id, self.namespace)
                self.registry.register(route, field_id, sub_path=sub_path)
            bindings.append(self.registry.set_dirty(field_id, value))
        log.debug("manager.dynamic_settings", count=len(bindings))
        return bindings

    def build_controls(self, existing: Mapping[str, Control] | None = None) -> Section:
        return build_controls(self.registry, existing)

    # ── Bootstrap blobs ─────────────────────────────────────────────────

    def preview_bootstrap(self) -> dict[str, Any]:
        """Arguments handed to the preview-frame client at page load."""
        session = self.require_session()
        dirty = {fid: value for fid, value in self.registry.get_dirty_values().items() if is_rest_field_id(fid)}
        return {
            "previewedTheme": session.stylesheet,
            "previewNonce": session.issue_nonce(),
            "restApiRoot": self.settings.rest_api_root,
            "initialDirtySettingValues": dirty,
        }

    def pane_bootstrap(self) -> dict[str, Any]:
        """Arguments handed to the pane client, including the route schema.

        Raises:
            DispatchError: the REST index could not be dispatched
        """
        session = self.require_session()
        response = self.server.serve(RestRequest("GET", "/", capabilities=self.capabilities))
        if response.is_error:
            raise response.as_error().with_context(route="/")
        return {
            "previewedTheme": session.stylesheet,
            "previewNonce": session.issue_nonce(),
            "restApiRoot": self.settings.rest_api_root,
            "schema": self.server.get_data_for_routes(context="help"),
        }

    @staticmethod
    def render_bootstrap(args: Mapping[str, Any]) -> str:
        """Serialize bootstrap arguments as a single JSON blob."""
        return json.dumps(args, sort_keys=True, default=str)

    # ── Publish ─────────────────────────────────────────────────────────

    async def publish(self) -> PublishReport:
        """Write every dirty binding back through the REST API in ``edit`` context.

        Bindings are written in registration order; failed bindings stay
        dirty and are listed in the report.
        """
        self.require_session()
        report = PublishReport()
        with log_step("manager.publish") as timer:
            for binding in self.registry.bindings():
                if not binding.is_dirty:
                    continue
                try:
                    result = await self.fetcher(
                        "PUT",
                        binding.route,
                        DispatchContext.EDIT,
                        body=binding.write_payload(),
                    )
                except SessionExpiredError:
                    raise
                except Exception as e:
                    report.failed[binding.field_id] = {"error_type": type(e).__name__, "message": str(e)}
                    continue

                if result.is_error:
                    error = DispatchError(
                        result.body.get("message", "Publish failed") if isinstance(result.body, dict) else "Publish failed",
                        code=result.body.get("code") if isinstance(result.body, dict) else None,
                        status=result.status,
                    ).with_context(route=binding.route, field_id=binding.field_id)
                    report.failed[binding.field_id] = error.to_dict()
                    continue

                self.registry.commit(binding.field_id)
                report.committed.append(binding.field_id)
            timer.add_metric("committed", len(report.committed))
            timer.add_metric("failed", len(report.failed))
        return report
