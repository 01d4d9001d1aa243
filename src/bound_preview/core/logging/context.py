"""
Per-task log context.

The synchronizer fetches each route in its own asyncio task and the API
serves each request in its own context, so the fields that identify *what*
is being logged (session, route, field, request) live in a ``ContextVar``
and are stamped onto every entry by ``add_context_processor``.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

import structlog


@dataclass(frozen=True)
class LogContext:
    """Identifiers stamped onto log entries; ``None`` fields are omitted."""

    session_id: str | None = None
    stylesheet: str | None = None
    request_id: str | None = None
    route: str | None = None
    field_id: str | None = None
    step: str | None = None
    span_id: str | None = None
    parent_span_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    def merge(self, **values: Any) -> LogContext:
        """Copy with ``values`` applied; unknown keys and ``None`` are skipped."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in values.items() if k in known and v is not None})


_EMPTY = LogContext()
_current: ContextVar[LogContext] = ContextVar("bound_preview_log_context", default=_EMPTY)


def get_context() -> LogContext:
    return _current.get()


def set_context(**values: Any) -> LogContext:
    """Replace the whole context with ``values``."""
    ctx = _EMPTY.merge(**values)
    _current.set(ctx)
    return ctx


def bind_context(**values: Any) -> LogContext:
    """Add ``values`` to the context for the rest of this task."""
    ctx = _current.get().merge(**values)
    _current.set(ctx)
    return ctx


def clear_context() -> None:
    _current.set(_EMPTY)


class ContextToken:
    """Handle returned by ``push_context``; ``restore()`` undoes the push."""

    __slots__ = ("_token",)

    def __init__(self, token: Token[LogContext]) -> None:
        self._token = token

    def restore(self) -> None:
        _current.reset(self._token)

    def __enter__(self) -> ContextToken:
        return self

    def __exit__(self, *exc: object) -> None:
        self.restore()


def push_context(**values: Any) -> ContextToken:
    """Layer ``values`` over the current context until the token is restored.

    Usage::

        with push_context(route="/wp/v2/pages/4"):
            log.debug("sync.fetch")
    """
    return ContextToken(_current.set(_current.get().merge(**values)))


def add_context_processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor; explicit keys on the call win over context."""
    for key, value in _current.get().to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)
