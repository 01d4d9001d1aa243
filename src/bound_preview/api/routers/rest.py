"""
REST pass-through — dispatches ``/rest/<route>`` through the in-process server.

A request carrying a valid ``X-Preview-Nonce`` is a preview request, so the
context-elevating dispatcher may upgrade it; the response then carries the
context header. A request with an invalid nonce is rejected rather than
silently served outside the preview.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from bound_preview.api.deps import Manager
from bound_preview.core.logging import get_logger
from bound_preview.rest.models import RestRequest, RestResponse
from bound_preview.sync.fetchers import NONCE_HEADER

router = APIRouter()
log = get_logger(__name__)


@router.api_route("/rest/{route:path}", methods=["GET", "POST", "PUT", "PATCH"])
async def dispatch_rest(route: str, request: Request, manager: Manager) -> JSONResponse:
    """Serve one REST request."""
    nonce = request.headers.get(NONCE_HEADER)
    preview = False
    if nonce is not None:
        if not manager.verify_nonce(nonce):
            return _to_json(RestResponse.error("preview_nonce_invalid", "The preview nonce is invalid or expired.", 403))
        preview = True

    body = None
    raw = await request.body()
    if raw:
        try:
            body = json.loads(raw)
        except ValueError:
            return _to_json(RestResponse.error("rest_invalid_json", "Invalid JSON body passed.", 400))

    rest_request = RestRequest(
        request.method,
        "/" + route,
        params=dict(request.query_params),
        body=body,
        headers=dict(request.headers),
        capabilities=manager.capabilities,
        preview=preview,
    )
    response = manager.server.serve(rest_request)
    log.debug("api.rest", route=rest_request.route, status=response.status, preview=preview)
    return _to_json(response)


def _to_json(response: RestResponse) -> JSONResponse:
    return JSONResponse(status_code=response.status, content=response.data, headers=response.headers)
