"""
Context-elevating dispatcher.

Manifesto:
    Inside a preview session the pane needs the ``edit`` representation of a
    resource (raw fields) to bind controls to it, but callers ask with the
    default read context. The dispatcher upgrades those reads transparently
    and falls back to the original request when the upgrade is not allowed,
    so an elevation failure never becomes the caller's failure.

Behaviour, per eligible request (GET/HEAD in a read context, preview session active, no
earlier hook already produced a result):

1. Clone the request with ``context=edit`` and dispatch the clone once.
2. Error response → discard it, let the original request dispatch normally.
3. Success → rewrite the original request's context to ``edit`` and return
   the elevated response in place of the handler's.

The post-dispatch hook then stamps the effective context on the response
(header + ``response.context``) whenever it is ``edit``.

Example:
    >>> server = RestServer()
    >>> dispatcher = ContextElevatingDispatcher(server, is_preview=lambda request: True)
    >>> dispatcher.install()
    >>> response = server.serve(RestRequest("GET", "/wp/v2/pages/4"))
    >>> response.context  # DispatchContext.EDIT when the user may edit pages

Tags:
    rest, dispatch, context-elevation, preview
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from bound_preview.core.errors import DispatchError
from bound_preview.core.logging import get_logger
from bound_preview.rest.models import DispatchContext, RestRequest, RestResponse
from bound_preview.rest.server import RestServer

log = get_logger(__name__)

DEFAULT_CONTEXT_HEADER = "X-Bound-Preview-Context"
READ_METHODS = frozenset({"GET", "HEAD"})


@dataclass
class ElevationStats:
    """Counters for elevation outcomes."""

    elevated: int = 0
    fallbacks: int = 0


class ContextElevatingDispatcher:
    """Upgrades preview-session reads to the ``edit`` context.

    Args:
        server: Server whose dispatch is wrapped
        is_preview: Called with the request; True when it belongs to an active preview session
        context_header: Response header naming the effective context
    """

    def __init__(
        self,
        server: RestServer,
        is_preview: Callable[[RestRequest], bool],
        context_header: str = DEFAULT_CONTEXT_HEADER,
    ) -> None:
        self.server = server
        self.is_preview = is_preview
        self.context_header = context_header
        self.stats = ElevationStats()
        self._installed = False

    def install(self) -> None:
        if self._installed:
            return
        self.server.add_pre_dispatch(self.use_edit_context_for_request)
        self.server.add_post_dispatch(self.export_context_with_response)
        self._installed = True

    def uninstall(self) -> None:
        self.server.remove_hook(self.use_edit_context_for_request)
        self.server.remove_hook(self.export_context_with_response)
        self._installed = False

    def use_edit_context_for_request(
        self,
        result: RestResponse | None,
        server: RestServer,
        request: RestRequest,
    ) -> RestResponse | None:
        """Pre-dispatch hook: try the request again under ``edit``."""
        if result is not None or request.method not in READ_METHODS or not self.is_preview(request):
            return result
        try:
            if request.context is DispatchContext.EDIT:
                return result
        except ValueError:
            # Invalid context values are rejected by the server itself.
            return result

        edit_request = request.clone()
        edit_request.context = DispatchContext.EDIT
        edit_result = server.dispatch(edit_request)

        if edit_result.is_error:
            error: DispatchError = edit_result.as_error().with_context(
                route=request.route,
                context=DispatchContext.EDIT.value,
            )
            self.stats.fallbacks += 1
            log.debug("dispatch.elevation_failed", **error.to_dict())
            return result

        request.context = DispatchContext.EDIT
        self.stats.elevated += 1
        log.debug("dispatch.elevated", route=request.route, method=request.method)
        return edit_result

    def export_context_with_response(
        self,
        response: RestResponse,
        server: RestServer,
        request: RestRequest,
    ) -> RestResponse:
        """Post-dispatch hook: expose the context that produced the response."""
        if request.params.get("context") == DispatchContext.EDIT.value:
            response.header(self.context_header, DispatchContext.EDIT.value)
            response.context = DispatchContext.EDIT
        elif response.context is None and not response.is_error:
            response.context = request.context
        return response
