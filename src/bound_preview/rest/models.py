"""
Request/response models for the in-process REST server.

``RestRequest`` keeps its parameters in a mapping and exposes the dispatch
context as a property over the ``context`` parameter, so the context a request
was *asked* for and the context that actually *produced* its result are the
same field: the dispatcher rewrites it after a successful elevation.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from bound_preview.core.errors import DispatchError


class DispatchContext(str, Enum):
    """REST permission scope a request is served under.

    ``view`` and ``embed`` are read contexts; ``edit`` exposes raw fields and
    requires the route's edit capability.
    """

    VIEW = "view"
    EMBED = "embed"
    EDIT = "edit"


@dataclass
class RestRequest:
    """A single REST request.

    Attributes:
        method: HTTP verb (upper-case)
        route: Route path, e.g. ``/wp/v2/pages/4``
        params: Query/body parameters; ``context`` lives here
        body: JSON body for writes
        headers: Request headers (case preserved)
        capabilities: Capabilities of the requesting user
        url_params: Named groups captured from the matched route pattern
        preview: Request was made from inside a preview session
    """

    method: str
    route: str
    params: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    capabilities: frozenset[str] = frozenset()
    url_params: dict[str, str] = field(default_factory=dict)
    preview: bool = False

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not self.route.startswith("/"):
            self.route = "/" + self.route

    @property
    def context(self) -> DispatchContext:
        """Effective context; defaults to ``view`` when none was requested."""
        raw = self.params.get("context")
        if raw is None:
            return DispatchContext.VIEW
        return DispatchContext(raw)

    @context.setter
    def context(self, value: DispatchContext | str) -> None:
        self.params["context"] = DispatchContext(value).value

    @property
    def has_explicit_context(self) -> bool:
        return "context" in self.params

    def clone(self) -> RestRequest:
        """Deep copy; mutating the clone never touches the original."""
        return copy.deepcopy(self)


@dataclass
class RestResponse:
    """Result of dispatching a ``RestRequest``."""

    status: int = 200
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    context: DispatchContext | None = None

    @property
    def is_error(self) -> bool:
        return self.status >= 400

    @property
    def error_code(self) -> str | None:
        if self.is_error and isinstance(self.data, dict):
            return self.data.get("code")
        return None

    def header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def as_error(self) -> DispatchError:
        """Convert an error response into a ``DispatchError``."""
        message = "Unknown error"
        if isinstance(self.data, dict):
            message = self.data.get("message", message)
        return DispatchError(message, code=self.error_code, status=self.status)

    @classmethod
    def error(cls, code: str, message: str, status: int) -> RestResponse:
        return cls(status=status, data={"code": code, "message": message, "data": {"status": status}})


class FetchResult(NamedTuple):
    """Boundary result of ``(method, route, context)`` dispatch."""

    status: int
    body: Any
    is_error: bool

    @classmethod
    def from_response(cls, response: RestResponse) -> FetchResult:
        return cls(response.status, response.data, response.is_error)
