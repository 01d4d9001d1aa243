"""HTTP middleware and exception handlers."""

from bound_preview.api.middleware.errors import bound_preview_error_handler, unhandled_exception_handler
from bound_preview.api.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware", "bound_preview_error_handler", "unhandled_exception_handler"]
