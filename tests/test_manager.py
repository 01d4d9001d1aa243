"""
Tests for PreviewManager — sessions, dynamic settings, bootstraps, publish.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from bound_preview.core.errors import DispatchError, SessionExpiredError
from bound_preview.manager import PreviewManager
from bound_preview.rest.models import DispatchContext, FetchResult, RestRequest, RestResponse
from bound_preview.rest.server import RestServer
from bound_preview.sync.synchronizer import RESOURCE_SYNCED, SyncState

TITLE = "rest_resource[pages][4][title]"
POST_TITLE = "rest_resource[posts][1][title]"


class TestSession:
    def test_is_preview_requires_active_session(self, manager: PreviewManager, clock):
        assert not manager.is_preview()
        manager.start_session()
        assert manager.is_preview()
        assert manager.is_preview(RestRequest("GET", "/", preview=True))
        assert not manager.is_preview(RestRequest("GET", "/"))

        clock.advance(manager.settings.session_ttl_seconds)
        assert not manager.is_preview()

    def test_start_session_uses_default_stylesheet(self, manager):
        assert manager.start_session().stylesheet == "default"
        assert manager.start_session("twentytwenty").stylesheet == "twentytwenty"

    def test_new_session_replaces_old_and_discards_edits(self, manager):
        first = manager.start_session()
        manager.register_dynamic_settings({TITLE: "Edited"})
        second = manager.start_session()
        assert first.ended
        assert second.is_active
        assert manager.registry.get_dirty_values() == {}

    def test_verify_nonce(self, manager):
        assert not manager.verify_nonce("whatever")
        session = manager.start_session()
        assert manager.verify_nonce(session.issue_nonce())
        assert not manager.verify_nonce("0000000000")

    def test_require_session(self, manager):
        with pytest.raises(SessionExpiredError):
            manager.require_session()

    @pytest.mark.asyncio
    async def test_end_session(self, manager):
        session = manager.start_session()
        manager.register_dynamic_settings({TITLE: "Edited"})
        await manager.end_session()
        assert session.ended
        assert not manager.is_preview()
        assert manager.registry.get_dirty_values() == {}


class TestDynamicSettings:
    def test_binds_rest_field_ids_only(self, manager):
        manager.start_session()
        bindings = manager.register_dynamic_settings({TITLE: "Hello", "blogname": "Site"})
        assert [b.field_id for b in bindings] == [TITLE]
        assert bindings[0].route == "/wp/v2/pages/4"
        assert bindings[0].sub_path == ("title",)
        assert manager.registry.get_dirty_values() == {TITLE: "Hello"}

    def test_repeated_post_updates_dirty_value(self, manager):
        manager.start_session()
        manager.register_dynamic_settings({TITLE: "One"})
        manager.register_dynamic_settings({TITLE: "Two"})
        assert len(manager.registry) == 1
        assert manager.registry.get_dirty_values() == {TITLE: "Two"}

    def test_requires_session(self, manager):
        with pytest.raises(SessionExpiredError):
            manager.register_dynamic_settings({TITLE: "x"})

    def test_controls_follow_registration_order(self, manager):
        manager.start_session()
        manager.register_dynamic_settings({POST_TITLE: "a", TITLE: "b"})
        section = manager.build_controls()
        assert [(c.id, c.priority) for c in section.controls] == [(POST_TITLE, 0), (TITLE, 1)]


class TestBootstrap:
    def test_preview_bootstrap(self, manager):
        session = manager.start_session("twentytwenty")
        manager.register_dynamic_settings({TITLE: "Hello"})
        args = manager.preview_bootstrap()
        assert args["previewedTheme"] == "twentytwenty"
        assert args["restApiRoot"] == "http://testserver/rest/"
        assert args["initialDirtySettingValues"] == {TITLE: "Hello"}
        assert session.check_nonce(args["previewNonce"]) == 1

    def test_pane_bootstrap_includes_schema(self, manager):
        manager.start_session()
        args = manager.pane_bootstrap()
        assert args["schema"]["/wp/v2/pages"]["schema"]["title"] == "pages"
        assert "initialDirtySettingValues" not in args

    def test_pane_bootstrap_index_failure(self, settings, clock):
        server = RestServer()
        server.add_pre_dispatch(lambda result, srv, req: RestResponse.error("rest_no_route", "No route.", 404))
        manager = PreviewManager(settings, server=server, clock=clock)
        manager.start_session()
        with pytest.raises(DispatchError) as exc_info:
            manager.pane_bootstrap()
        assert exc_info.value.code == "rest_no_route"

    def test_render_bootstrap(self):
        blob = PreviewManager.render_bootstrap({"b": 1, "a": [1, 2]})
        assert blob == '{"a": [1, 2], "b": 1}'
        assert json.loads(blob) == {"a": [1, 2], "b": 1}


class TestSynchronizer:
    def test_requires_session(self, manager):
        with pytest.raises(SessionExpiredError):
            manager.synchronizer  # noqa: B018

    def test_one_per_session(self, manager):
        manager.start_session()
        first = manager.synchronizer
        assert manager.synchronizer is first
        manager.start_session()
        assert manager.synchronizer is not first
        assert first.closed

    @pytest.mark.asyncio
    async def test_replaced_session_stops_syncing(self, manager):
        events = []

        async def record(event):
            events.append((event.event_type, event.session_id))

        manager.start_session("a")
        manager.register_dynamic_settings({TITLE: "Old"})
        old = manager.synchronizer
        old.edit(TITLE, "Old edit")

        manager.start_session("b")
        await manager.bus.subscribe("preview.*", record)
        await asyncio.sleep(0.1)

        assert events == []
        assert old.closed
        assert old.requests_sent == 0

    @pytest.mark.asyncio
    async def test_edit_syncs_through_elevating_server(self, manager):
        synced = []

        async def on_synced(event):
            synced.append(event.payload)

        await manager.bus.subscribe(RESOURCE_SYNCED, on_synced)
        manager.start_session()
        (binding,) = manager.register_dynamic_settings({TITLE: "Live"})
        manager.synchronizer.edit(TITLE, "Live title")

        assert await manager.synchronizer.flush() is SyncState.IDLE
        assert binding.current_value == "Sample Page"
        assert synced[0]["body"]["title"] == {"raw": "Live title", "rendered": "Live title"}
        assert manager.dispatcher.stats.elevated == 1


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_writes_and_commits(self, manager, pages):
        manager.start_session()
        manager.register_dynamic_settings({TITLE: "Published"})
        report = await manager.publish()
        assert report.ok
        assert report.committed == [TITLE]
        assert pages.items[4]["title"] == "Published"
        assert manager.registry.get(TITLE).current_value == "Published"
        assert manager.registry.get_dirty_values() == {}

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_binding_dirty(self, manager):
        missing = "rest_resource[pages][99][title]"
        manager.start_session()
        manager.register_dynamic_settings({missing: "x", TITLE: "y"})
        report = await manager.publish()
        assert not report.ok
        assert report.committed == [TITLE]
        assert report.failed[missing]["code"] == "rest_pages_invalid_id"
        assert manager.registry.get_dirty_values() == {missing: "x"}

    @pytest.mark.asyncio
    async def test_publish_order_and_context(self, settings, server, clock):
        calls = []

        async def fetcher(method, route, context=None, body=None):
            calls.append((method, route, context, body))
            return FetchResult(200, {}, False)

        manager = PreviewManager(settings, server=server, fetcher=fetcher, clock=clock)
        manager.start_session()
        manager.register_dynamic_settings({POST_TITLE: "a", TITLE: "b"})
        await manager.publish()
        assert calls == [
            ("PUT", "/wp/v2/posts/1", DispatchContext.EDIT, {"title": "a"}),
            ("PUT", "/wp/v2/pages/4", DispatchContext.EDIT, {"title": "b"}),
        ]

    @pytest.mark.asyncio
    async def test_publish_session_expiry_propagates(self, settings, server, clock):
        async def fetcher(method, route, context=None, body=None):
            raise SessionExpiredError("expired")

        manager = PreviewManager(settings, server=server, fetcher=fetcher, clock=clock)
        manager.start_session()
        manager.register_dynamic_settings({TITLE: "b"})
        with pytest.raises(SessionExpiredError):
            await manager.publish()

    @pytest.mark.asyncio
    async def test_publish_transport_error_is_reported(self, settings, server, clock):
        async def fetcher(method, route, context=None, body=None):
            raise ConnectionError("refused")

        manager = PreviewManager(settings, server=server, fetcher=fetcher, clock=clock)
        manager.start_session()
        manager.register_dynamic_settings({TITLE: "b"})
        report = await manager.publish()
        assert report.failed[TITLE] == {"error_type": "ConnectionError", "message": "refused"}
