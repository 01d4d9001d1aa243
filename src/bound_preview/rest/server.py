"""
In-process REST server with explicit dispatch hook chains.

Manifesto:
    Routes, permission checks and context handling live behind one
    ``dispatch`` call so the context-elevating dispatcher can wrap it without
    knowing about individual endpoints. Hooks are registered on the server
    object with a priority instead of through a global filter registry.

Two entry points:

- ``dispatch(request)``: pre-dispatch hooks, then route matching and the
  handler. This is what an elevated clone goes through.
- ``serve(request)``: ``dispatch`` plus the post-dispatch hooks. This is what
  outside callers (HTTP API, fetchers) use.

Pre-dispatch hooks receive ``(result, server, request)`` and return either a
response (short-circuits the handler) or the ``result`` they were given.
Post-dispatch hooks receive ``(response, server, request)`` and return the
response to send.

Tags:
    rest, server, dispatch, hooks, routing
"""

from __future__ import annotations

import itertools
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from bound_preview.core.errors import RestError
from bound_preview.core.logging import get_logger
from bound_preview.rest.models import DispatchContext, RestRequest, RestResponse

log = get_logger(__name__)

RouteHandler = Callable[[RestRequest], Any]
PreDispatchHook = Callable[[RestResponse | None, "RestServer", RestRequest], RestResponse | None]
PostDispatchHook = Callable[[RestResponse, "RestServer", RestRequest], RestResponse]


@dataclass
class Endpoint:
    """One method set + handler on a route."""

    methods: frozenset[str]
    handler: RouteHandler
    edit_capability: str | None = None
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class Route:
    """A route pattern with its endpoints and optional resource schema."""

    pattern: str
    namespace: str
    endpoints: list[Endpoint] = field(default_factory=list)
    schema: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self._regex = re.compile(f"^{self.pattern}$")

    def match(self, path: str) -> dict[str, str] | None:
        m = self._regex.match(path)
        if m is None:
            return None
        return {k: v for k, v in m.groupdict().items() if v is not None}

    def endpoint_for(self, method: str) -> Endpoint | None:
        for endpoint in self.endpoints:
            if method in endpoint.methods:
                return endpoint
        return None


@dataclass
class _Hook:
    priority: int
    sequence: int
    callback: Callable[..., Any]


class RestServer:
    """Route table plus ordered pre/post dispatch hooks."""

    def __init__(self) -> None:
        self._routes: dict[str, Route] = {}
        self._pre_hooks: list[_Hook] = []
        self._post_hooks: list[_Hook] = []
        self._sequence = itertools.count()
        self.register_route("/", ["GET"], self._index, namespace="")

    # ── Registration ────────────────────────────────────────────────────

    def register_route(
        self,
        pattern: str,
        methods: Iterable[str],
        handler: RouteHandler,
        *,
        namespace: str = "",
        edit_capability: str | None = None,
        schema: dict[str, Any] | None = None,
        args: dict[str, Any] | None = None,
    ) -> Route:
        """Add an endpoint to ``pattern``; later endpoints for the same pattern append."""
        route = self._routes.get(pattern)
        if route is None:
            route = Route(pattern=pattern, namespace=namespace, schema=schema)
            self._routes[pattern] = route
        elif schema is not None:
            route.schema = schema
        route.endpoints.append(
            Endpoint(
                methods=frozenset(m.upper() for m in methods),
                handler=handler,
                edit_capability=edit_capability,
                args=args or {},
            )
        )
        log.debug("rest.route_registered", pattern=pattern, methods=sorted(methods))
        return route

    def get_routes(self) -> dict[str, Route]:
        return dict(self._routes)

    def add_pre_dispatch(self, hook: PreDispatchHook, priority: int = 10) -> None:
        self._pre_hooks.append(_Hook(priority, next(self._sequence), hook))
        self._pre_hooks.sort(key=lambda h: (h.priority, h.sequence))

    def add_post_dispatch(self, hook: PostDispatchHook, priority: int = 10) -> None:
        self._post_hooks.append(_Hook(priority, next(self._sequence), hook))
        self._post_hooks.sort(key=lambda h: (h.priority, h.sequence))

    def remove_hook(self, hook: Callable[..., Any]) -> None:
        self._pre_hooks = [h for h in self._pre_hooks if h.callback != hook]
        self._post_hooks = [h for h in self._post_hooks if h.callback != hook]

    # ── Dispatch ────────────────────────────────────────────────────────

    def dispatch(self, request: RestRequest) -> RestResponse:
        """Run pre-dispatch hooks, then the matching handler."""
        result: RestResponse | None = None
        for hook in self._pre_hooks:
            result = hook.callback(result, self, request)
        if result is not None:
            return result
        return self._dispatch_to_handler(request)

    def serve(self, request: RestRequest) -> RestResponse:
        """``dispatch`` followed by the post-dispatch hooks."""
        response = self.dispatch(request)
        for hook in self._post_hooks:
            response = hook.callback(response, self, request)
        return response

    def _dispatch_to_handler(self, request: RestRequest) -> RestResponse:
        try:
            context = request.context
        except ValueError:
            return RestResponse.error(
                "rest_invalid_param",
                f"Invalid parameter(s): context ({request.params.get('context')!r})",
                400,
            )

        for route in self._routes.values():
            url_params = route.match(request.route)
            if url_params is None:
                continue
            endpoint = route.endpoint_for(request.method)
            if endpoint is None:
                continue

            if (
                context is DispatchContext.EDIT
                and endpoint.edit_capability is not None
                and endpoint.edit_capability not in request.capabilities
            ):
                return RestResponse.error(
                    "rest_forbidden_context",
                    "Sorry, you are not allowed to edit this resource.",
                    403,
                )

            request.url_params = url_params
            try:
                result = endpoint.handler(request)
            except RestError as e:
                log.debug("rest.handler_error", route=request.route, code=e.code, status=e.status)
                return RestResponse.error(e.code, e.message, e.status)

            if isinstance(result, RestResponse):
                return result
            return RestResponse(status=200, data=result)

        return RestResponse.error("rest_no_route", "No route was found matching the URL and request method.", 404)

    # ── Index / schema ──────────────────────────────────────────────────

    def get_data_for_routes(self, context: str = "view") -> dict[str, Any]:
        """Describe every route; ``help`` context includes the resource schema."""
        data: dict[str, Any] = {}
        for pattern, route in self._routes.items():
            methods: list[str] = sorted({m for e in route.endpoints for m in e.methods})
            entry: dict[str, Any] = {
                "namespace": route.namespace,
                "methods": methods,
                "endpoints": [{"methods": sorted(e.methods), "args": e.args} for e in route.endpoints],
            }
            if context == "help" and route.schema is not None:
                entry["schema"] = route.schema
            data[pattern] = entry
        return data

    def _index(self, request: RestRequest) -> dict[str, Any]:
        namespaces = sorted({r.namespace for r in self._routes.values() if r.namespace})
        return {"namespaces": namespaces, "routes": self.get_data_for_routes()}
