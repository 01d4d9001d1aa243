"""
Fetchers: the ``(method, route, context) → (status, body, is_error)`` boundary.

``ServerFetcher`` talks to an in-process ``RestServer``; ``HttpFetcher`` talks
to a remote REST root over HTTP with httpx. Both raise ``SessionExpiredError``
when the preview session is no longer valid and ``SyncError`` for transport
failures. Error *responses* are returned, not raised.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol

import httpx

from bound_preview.core.errors import SessionExpiredError, SyncError
from bound_preview.core.logging import get_logger
from bound_preview.rest.models import DispatchContext, FetchResult, RestRequest
from bound_preview.rest.server import RestServer
from bound_preview.session import PreviewSession

log = get_logger(__name__)

NONCE_HEADER = "X-Preview-Nonce"
INVALID_NONCE_CODES = frozenset({"rest_cookie_invalid_nonce", "preview_nonce_invalid", "preview_session_expired"})


class Fetcher(Protocol):
    async def __call__(
        self,
        method: str,
        route: str,
        context: DispatchContext | None = None,
        body: Any = None,
    ) -> FetchResult: ...


def is_session_rejection(result: FetchResult) -> bool:
    """True when an error response says the preview nonce/session is invalid."""
    if not result.is_error or result.status not in (401, 403):
        return False
    return isinstance(result.body, dict) and result.body.get("code") in INVALID_NONCE_CODES


class ServerFetcher:
    """Dispatch through an in-process server (``serve``, so hooks apply)."""

    def __init__(
        self,
        server: RestServer,
        *,
        capabilities: Iterable[str] = (),
        session: PreviewSession | Callable[[], PreviewSession | None] | None = None,
    ) -> None:
        self.server = server
        self.capabilities = frozenset(capabilities)
        self._session = session

    def _current_session(self) -> PreviewSession | None:
        if self._session is None or isinstance(self._session, PreviewSession):
            return self._session
        return self._session()

    async def __call__(
        self,
        method: str,
        route: str,
        context: DispatchContext | None = None,
        body: Any = None,
    ) -> FetchResult:
        session = self._current_session()
        if session is not None:
            session.ensure_active()
        params = {} if context is None else {"context": DispatchContext(context).value}
        request = RestRequest(
            method,
            route,
            params=params,
            body=body,
            capabilities=self.capabilities,
            preview=session is not None,
        )
        return FetchResult.from_response(self.server.serve(request))


class HttpFetcher:
    """Fetch from a remote REST root with ``httpx.AsyncClient``.

    Usage:
        async with HttpFetcher("http://127.0.0.1:8420/rest/", nonce) as fetch:
            result = await fetch("GET", "/wp/v2/pages/4")
    """

    def __init__(
        self,
        rest_api_root: str,
        nonce: str | None = None,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.rest_api_root = rest_api_root if rest_api_root.endswith("/") else rest_api_root + "/"
        self.nonce = nonce
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> HttpFetcher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def url_for(self, route: str) -> str:
        return self.rest_api_root + route.lstrip("/")

    async def __call__(
        self,
        method: str,
        route: str,
        context: DispatchContext | None = None,
        body: Any = None,
    ) -> FetchResult:
        headers = {NONCE_HEADER: self.nonce} if self.nonce else {}
        params = {} if context is None else {"context": DispatchContext(context).value}
        try:
            response = await self._client.request(
                method,
                self.url_for(route),
                params=params,
                json=body,
                headers=headers,
            )
        except httpx.HTTPError as e:
            log.debug("fetch.transport_error", route=route, error=str(e))
            raise SyncError(f"Request to {route} failed: {e}", cause=e).with_context(route=route) from e

        try:
            data = response.json()
        except ValueError:
            data = response.text
        result = FetchResult(response.status_code, data, response.is_error)
        if is_session_rejection(result):
            raise SessionExpiredError("Preview nonce rejected by server").with_context(
                route=route, http_status=result.status
            )
        return result
