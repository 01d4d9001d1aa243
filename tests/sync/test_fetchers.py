"""
Tests for ServerFetcher and HttpFetcher.
"""

from __future__ import annotations

import httpx
import pytest

from bound_preview.core.errors import SessionExpiredError, SyncError
from bound_preview.rest.dispatcher import ContextElevatingDispatcher
from bound_preview.rest.models import DispatchContext, FetchResult
from bound_preview.session import NonceIssuer, PreviewSession
from bound_preview.sync.fetchers import NONCE_HEADER, HttpFetcher, ServerFetcher, is_session_rejection

EDITOR = frozenset({"edit_pages", "edit_posts"})


class TestIsSessionRejection:
    def test_codes(self):
        assert is_session_rejection(FetchResult(403, {"code": "rest_cookie_invalid_nonce"}, True))
        assert is_session_rejection(FetchResult(401, {"code": "preview_session_expired"}, True))
        assert not is_session_rejection(FetchResult(403, {"code": "rest_forbidden"}, True))
        assert not is_session_rejection(FetchResult(500, {"code": "rest_cookie_invalid_nonce"}, True))
        assert not is_session_rejection(FetchResult(200, {}, False))


class TestServerFetcher:
    @pytest.mark.asyncio
    async def test_fetch_in_preview_is_elevated(self, server):
        session = PreviewSession.start("twentytwenty", NonceIssuer("s"))
        ContextElevatingDispatcher(server, is_preview=lambda request: request.preview).install()
        fetch = ServerFetcher(server, capabilities=EDITOR, session=session)

        result = await fetch("GET", "/wp/v2/pages/7")
        assert result.status == 200
        assert result.body["title"]["raw"] == "About & Contact"

    @pytest.mark.asyncio
    async def test_explicit_context_and_body(self, server, pages):
        fetch = ServerFetcher(server, capabilities=EDITOR)
        result = await fetch("PUT", "/wp/v2/pages/4", DispatchContext.EDIT, body={"title": "Saved"})
        assert not result.is_error
        assert pages.items[4]["title"] == "Saved"

    @pytest.mark.asyncio
    async def test_error_responses_are_returned(self, server):
        result = await ServerFetcher(server)("GET", "/wp/v2/pages/99")
        assert result.is_error
        assert result.status == 404

    @pytest.mark.asyncio
    async def test_ended_session_raises(self, server):
        session = PreviewSession.start("twentytwenty", NonceIssuer("s"))
        session.end()
        fetch = ServerFetcher(server, session=lambda: session)
        with pytest.raises(SessionExpiredError):
            await fetch("GET", "/wp/v2/pages/4")


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpFetcher:
    def test_url_for(self):
        fetch = HttpFetcher("http://example.test/rest", client=_client(lambda r: httpx.Response(200)))
        assert fetch.url_for("/wp/v2/pages/4") == "http://example.test/rest/wp/v2/pages/4"

    @pytest.mark.asyncio
    async def test_sends_nonce_and_context(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["nonce"] = request.headers.get(NONCE_HEADER)
            seen["context"] = request.url.params.get("context")
            return httpx.Response(200, json={"id": 4})

        async with HttpFetcher("http://example.test/rest/", "abc123", client=_client(handler)) as fetch:
            result = await fetch("GET", "/wp/v2/pages/4", DispatchContext.EDIT)

        assert result == FetchResult(200, {"id": 4}, False)
        assert seen == {"nonce": "abc123", "context": "edit"}

    @pytest.mark.asyncio
    async def test_error_response_is_returned(self):
        handler = lambda r: httpx.Response(404, json={"code": "rest_no_route"})  # noqa: E731
        async with HttpFetcher("http://example.test/rest/", client=_client(handler)) as fetch:
            result = await fetch("GET", "/missing")
        assert result.is_error
        assert result.body["code"] == "rest_no_route"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        handler = lambda r: httpx.Response(502, text="Bad gateway")  # noqa: E731
        async with HttpFetcher("http://example.test/rest/", client=_client(handler)) as fetch:
            result = await fetch("GET", "/wp/v2/pages/4")
        assert result.body == "Bad gateway"

    @pytest.mark.asyncio
    async def test_nonce_rejection_raises(self):
        handler = lambda r: httpx.Response(403, json={"code": "rest_cookie_invalid_nonce"})  # noqa: E731
        async with HttpFetcher("http://example.test/rest/", "stale", client=_client(handler)) as fetch:
            with pytest.raises(SessionExpiredError):
                await fetch("GET", "/wp/v2/pages/4")

    @pytest.mark.asyncio
    async def test_transport_error_raises_sync_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with HttpFetcher("http://example.test/rest/", client=_client(handler)) as fetch:
            with pytest.raises(SyncError) as exc_info:
                await fetch("GET", "/wp/v2/pages/4")
        assert exc_info.value.retryable
        assert exc_info.value.context.route == "/wp/v2/pages/4"
