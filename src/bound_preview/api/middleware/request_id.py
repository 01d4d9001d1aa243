"""Request correlation for the preview pane, the preview frame and the logs.

The pane and the frame both call the API; an ``X-Request-ID`` they send is
kept, otherwise one is minted. The id is echoed on the response and pushed
into the log context for the duration of the request.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from bound_preview.core.logging import push_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = request_id
        with push_context(request_id=request_id):
            response = await call_next(request)
        response.headers[self.header_name] = request_id
        return response
