"""
Exception handlers turning errors into RFC 7807 problem responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from bound_preview.api.schemas import ProblemDetail
from bound_preview.core.errors import BoundPreviewError, ErrorCategory, RestError
from bound_preview.core.logging import get_logger

log = get_logger(__name__)

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.BINDING: 404,
    ErrorCategory.SESSION: 403,
    ErrorCategory.DISPATCH: 502,
    ErrorCategory.SYNC: 503,
    ErrorCategory.REST: 500,
    ErrorCategory.CONFIG: 500,
    ErrorCategory.INTERNAL: 500,
}

CATEGORY_TO_CODE: dict[ErrorCategory, str] = {
    ErrorCategory.SESSION: "preview_session_expired",
    ErrorCategory.BINDING: "unknown_binding",
}


def status_for_error(error: BoundPreviewError) -> int:
    """Resolve an error to an HTTP status, defaulting to 500."""
    if isinstance(error, RestError):
        return error.status
    return CATEGORY_TO_STATUS.get(error.category, 500)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    code: str | None = None,
) -> JSONResponse:
    """``ProblemDetail`` body with the given status."""
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance, code=code)
    return JSONResponse(status_code=status, content=body.model_dump())


async def bound_preview_error_handler(request: Request, exc: BoundPreviewError) -> JSONResponse:
    """Typed library errors → ProblemDetail with a stable ``code``."""
    status = status_for_error(exc)
    code = getattr(exc, "code", None) or CATEGORY_TO_CODE.get(exc.category, exc.category.value.lower())
    log.info("api.error", status=status, **exc.to_dict())
    return problem_response(
        status=status,
        title=type(exc).__name__,
        detail=exc.message,
        instance=str(request.url),
        code=code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 for anything that is not a ``BoundPreviewError``; details only in debug mode."""
    log.error("api.unhandled_exception", error_type=type(exc).__name__, error_message=str(exc))
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
