"""
Tests for the FastAPI application — REST pass-through and preview endpoints.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bound_preview.api.app import build_default_manager, create_app
from bound_preview.sync.fetchers import NONCE_HEADER

TITLE = "rest_resource[pages][4][title]"
HEADER = "X-Bound-Preview-Context"


@pytest.fixture
def client(settings, manager):
    with TestClient(create_app(settings=settings, manager=manager)) as c:
        yield c


@pytest.fixture
def nonce(client) -> str:
    response = client.post("/preview/session", json={"stylesheet": "twentytwenty"})
    assert response.status_code == 200
    return response.json()["preview_nonce"]


class TestCreateApp:
    def test_returns_fastapi_instance(self, settings):
        assert isinstance(create_app(settings=settings), FastAPI)

    def test_default_manager_has_collections(self, settings):
        manager = build_default_manager(settings)
        routes = manager.server.get_routes()
        assert "/wp/v2/pages" in routes
        assert "/wp/v2/posts" in routes
        assert manager.capabilities == frozenset({"edit_pages", "edit_posts"})

    def test_state_and_middleware(self, settings, manager):
        app = create_app(settings=settings, manager=manager)
        assert app.state.manager is manager
        assert app.state.settings is settings
        middleware_classes = [m.cls.__name__ for m in app.user_middleware]
        assert "CORSMiddleware" in middleware_classes
        assert "RequestIDMiddleware" in middleware_classes

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["preview_active"] is False

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"

    def test_request_id_minted_when_missing(self, client):
        first = client.get("/health").headers["X-Request-ID"]
        second = client.get("/health").headers["X-Request-ID"]
        assert first and second and first != second


class TestRestPassThrough:
    def test_plain_read_is_not_elevated(self, client, nonce):
        response = client.get("/rest/wp/v2/pages/4")
        assert response.status_code == 200
        assert response.json()["title"] == {"rendered": "Sample Page"}
        assert HEADER not in response.headers

    def test_preview_read_is_elevated(self, client, nonce):
        response = client.get("/rest/wp/v2/pages/4", headers={NONCE_HEADER: nonce})
        assert response.status_code == 200
        assert response.headers[HEADER] == "edit"
        assert response.json()["title"]["raw"] == "Sample Page"

    def test_invalid_nonce_is_rejected(self, client, nonce):
        response = client.get("/rest/wp/v2/pages/4", headers={NONCE_HEADER: "0000000000"})
        assert response.status_code == 403
        assert response.json()["code"] == "preview_nonce_invalid"

    def test_non_ascii_nonce_is_rejected(self, client, nonce):
        latin1 = {NONCE_HEADER: "ééé".encode("latin-1")}
        assert client.get("/rest/wp/v2/pages/4", headers=latin1).status_code == 403
        assert client.get("/preview/bootstrap", headers=latin1).status_code == 403

    def test_rest_errors_pass_through(self, client):
        response = client.get("/rest/wp/v2/pages/99")
        assert response.status_code == 404
        assert response.json()["code"] == "rest_pages_invalid_id"

    def test_invalid_json_body(self, client):
        response = client.put(
            "/rest/wp/v2/pages/4", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "rest_invalid_json"

    def test_write(self, client, pages):
        response = client.put("/rest/wp/v2/pages/4", json={"title": "Updated"})
        assert response.status_code == 200
        assert pages.items[4]["title"] == "Updated"


class TestPreviewFlow:
    def test_endpoints_require_nonce(self, client, nonce):
        response = client.get("/preview/bootstrap")
        assert response.status_code == 403
        assert response.json()["code"] == "preview_session_expired"

    def test_edit_sync_publish(self, client, nonce, pages):
        headers = {NONCE_HEADER: nonce}

        posted = client.post(
            "/preview/settings",
            json={"values": {TITLE: "Live title", "blogname": "ignored"}},
            headers=headers,
        )
        assert posted.status_code == 200
        assert posted.json() == {"registered": [TITLE], "state": "dirty"}

        synced = client.post("/preview/sync", headers=headers).json()
        assert synced["state"] == "idle"
        assert synced["requests_sent"] == 1
        assert synced["last_error"] is None

        bootstrap = client.get("/preview/bootstrap", headers=headers).json()
        assert bootstrap["previewedTheme"] == "twentytwenty"
        assert bootstrap["initialDirtySettingValues"] == {TITLE: "Live title"}

        controls = client.get("/pane/controls", headers=headers).json()
        assert controls["id"] == "rest_resources"
        assert [c["id"] for c in controls["controls"]] == [TITLE]

        published = client.post("/preview/publish", headers=headers).json()
        assert published == {"committed": [TITLE], "failed": {}}
        assert pages.items[4]["title"] == "Live title"

    def test_pane_bootstrap(self, client, nonce):
        body = client.get("/pane/bootstrap", headers={NONCE_HEADER: nonce}).json()
        assert "/wp/v2/pages" in body["schema"]
        assert body["restApiRoot"] == "http://testserver/rest/"

    def test_end_session(self, client, nonce):
        headers = {NONCE_HEADER: nonce}
        assert client.delete("/preview/session", headers=headers).status_code == 204
        assert client.get("/health").json()["preview_active"] is False

        response = client.get("/preview/bootstrap", headers=headers)
        assert response.status_code == 403
        assert response.json()["title"] == "SessionExpiredError"


class TestCors:
    def test_no_cross_origin_access_by_default(self, client):
        response = client.get("/health", headers={"Origin": "https://evil.example"})
        assert "access-control-allow-origin" not in response.headers

    def test_listed_origin_gets_credentials(self, settings, manager):
        settings = settings.model_copy(update={"cors_origins": ["https://preview.example"]})
        with TestClient(create_app(settings=settings, manager=manager)) as c:
            allowed = c.get("/health", headers={"Origin": "https://preview.example"})
            other = c.get("/health", headers={"Origin": "https://evil.example"})
        assert allowed.headers["access-control-allow-origin"] == "https://preview.example"
        assert allowed.headers["access-control-allow-credentials"] == "true"
        assert "access-control-allow-origin" not in other.headers

    def test_wildcard_never_sends_credentials(self, settings, manager):
        settings = settings.model_copy(update={"cors_origins": ["*"]})
        with TestClient(create_app(settings=settings, manager=manager)) as c:
            response = c.get("/health", headers={"Origin": "https://evil.example"})
        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers
