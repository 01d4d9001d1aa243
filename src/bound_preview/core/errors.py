"""
Error types raised by bound-preview.

Each failure the caller has to tell apart gets its own class; all of them
derive from ``BoundPreviewError`` so a log line or an HTTP problem body can
be built from the error alone (``to_dict``).

    DispatchError        elevated ``edit`` dispatch failed; the dispatcher
                         recovers by serving the original request
    RestError            a route handler refused the request; becomes an
                         error response (code, message, status)
    UnknownBindingError  operation on a field id nobody registered
    SessionExpiredError  the preview session or its nonce is no longer
                         valid; halts synchronization
    SyncError            a sync fetch failed; the session keeps running
    ConfigError          invalid settings

Examples:
    >>> UnknownBindingError("rest_resource[pages][4][title]").to_dict()["category"]
    'BINDING'
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    DISPATCH = "DISPATCH"
    BINDING = "BINDING"
    SESSION = "SESSION"
    SYNC = "SYNC"
    REST = "REST"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Where the error happened: route, field, session, dispatch context, HTTP status.

    Keys ``with_context`` does not know land in ``metadata``.
    """

    route: str | None = None
    field_id: str | None = None
    session_id: str | None = None
    context: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def update(self, **values: Any) -> None:
        known = {f.name for f in fields(self)} - {"metadata"}
        for key, value in values.items():
            if key in known:
                setattr(self, key, value)
            else:
                self.metadata[key] = value

    def to_dict(self) -> dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if k != "metadata" and v is not None}
        return {**data, **self.metadata}


class BoundPreviewError(Exception):
    """Root of the hierarchy; subclasses pick ``category`` and ``retryable`` defaults."""

    default_category = ErrorCategory.INTERNAL
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **values: Any) -> BoundPreviewError:
        """Attach location details and return ``self`` so it can be raised inline."""
        self.context.update(**values)
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if context := self.context.to_dict():
            data["context"] = context
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class _ResponseError(BoundPreviewError):
    """An error that came from (or becomes) a REST error response."""

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.code = code
        self.status = status
        if status is not None:
            self.context.http_status = status

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.code:
            data["code"] = self.code
        return data


class DispatchError(_ResponseError):
    default_category = ErrorCategory.DISPATCH


class RestError(_ResponseError):
    """Raised by route handlers; the server turns it into ``{code, message, data: {status}}``."""

    default_category = ErrorCategory.REST

    def __init__(self, code: str, message: str, *, status: int = 500, **kwargs: Any) -> None:
        super().__init__(message, code=code, status=status, **kwargs)


class UnknownBindingError(BoundPreviewError):
    default_category = ErrorCategory.BINDING

    def __init__(self, field_id: str, message: str | None = None) -> None:
        self.field_id = field_id
        super().__init__(
            message or f"No binding registered for field: {field_id}",
            context=ErrorContext(field_id=field_id),
        )


class UnknownBindingKindError(BoundPreviewError):
    default_category = ErrorCategory.BINDING


class SessionExpiredError(BoundPreviewError):
    default_category = ErrorCategory.SESSION


class SyncError(BoundPreviewError):
    default_category = ErrorCategory.SYNC
    default_retryable = True


class ConfigError(BoundPreviewError):
    default_category = ErrorCategory.CONFIG


__all__ = [
    "BoundPreviewError",
    "ConfigError",
    "DispatchError",
    "ErrorCategory",
    "ErrorContext",
    "RestError",
    "SessionExpiredError",
    "SyncError",
    "UnknownBindingError",
    "UnknownBindingKindError",
]
