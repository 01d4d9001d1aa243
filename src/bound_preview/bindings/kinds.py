"""
Binding-kind factory.

Field ids of REST-bound settings look like ``rest_resource[...][...]``. Two
spellings are understood:

- ``rest_resource[/wp/v2/pages/4]`` (and further ``[key]`` segments): the
  first segment is the route itself.
- ``rest_resource[pages][4][title]``: the first two segments are the
  collection and item id under the default namespace, the rest is a path into
  the resource body.

A binding with a sub-path is a ``rest_field`` binding, otherwise a
``rest_resource`` binding. The kind is resolved once, when the binding is
created, from this closed table.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from bound_preview.bindings.binding import BindingKind, ResourceBinding, Transport
from bound_preview.core.errors import UnknownBindingKindError

FIELD_ID_PREFIX = "rest_resource"
FIELD_ID_PATTERN = re.compile(r"^rest_resource\[(?P<route>.*?)\]")
_SEGMENT_PATTERN = re.compile(r"\[([^\[\]]*)\]")
DEFAULT_NAMESPACE = "wp/v2"


def is_rest_field_id(field_id: str) -> bool:
    return FIELD_ID_PATTERN.match(field_id) is not None


def parse_field_id(field_id: str) -> list[str]:
    """Bracketed segments of ``field_id``.

    >>> parse_field_id("rest_resource[pages][4][title]")
    ['pages', '4', 'title']
    """
    if not is_rest_field_id(field_id):
        raise UnknownBindingKindError(f"Not a REST resource field id: {field_id}").with_context(field_id=field_id)
    return _SEGMENT_PATTERN.findall(field_id[len(FIELD_ID_PREFIX) :])


def route_for_field_id(field_id: str, namespace: str = DEFAULT_NAMESPACE) -> tuple[str, tuple[str, ...]]:
    """Derive ``(route, sub_path)`` from a field id."""
    segments = parse_field_id(field_id)
    if segments and segments[0].startswith("/"):
        return segments[0], tuple(segments[1:])
    if len(segments) >= 2:
        return f"/{namespace}/{segments[0]}/{segments[1]}", tuple(segments[2:])
    if len(segments) == 1:
        return f"/{namespace}/{segments[0]}", ()
    raise UnknownBindingKindError(f"Field id names no route: {field_id}").with_context(field_id=field_id)


@dataclass(frozen=True)
class BindingKindSpec:
    """How bindings of one kind are built."""

    kind: BindingKind
    transport: Transport
    requires_sub_path: bool


KIND_SPECS: dict[BindingKind, BindingKindSpec] = {
    BindingKind.REST_RESOURCE: BindingKindSpec(BindingKind.REST_RESOURCE, Transport.REFRESH, False),
    BindingKind.REST_FIELD: BindingKindSpec(BindingKind.REST_FIELD, Transport.REFRESH, True),
}


def resolve_kind(kind: BindingKind | str | None, sub_path: Sequence[str]) -> BindingKindSpec:
    """Resolve an explicit kind tag, or infer it from the sub-path."""
    if kind is None:
        kind = BindingKind.REST_FIELD if sub_path else BindingKind.REST_RESOURCE
    try:
        spec = KIND_SPECS[BindingKind(kind)]
    except (ValueError, KeyError):
        raise UnknownBindingKindError(f"Unknown binding kind: {kind!r}") from None
    if spec.requires_sub_path and not sub_path:
        raise UnknownBindingKindError(f"Binding kind {spec.kind.value} requires a sub-path")
    return spec


def create_binding(
    field_id: str,
    route: str,
    *,
    sub_path: Sequence[str] | None = None,
    kind: BindingKind | str | None = None,
    current_value: Any = None,
) -> ResourceBinding:
    """Build a binding of the resolved kind."""
    path = tuple(sub_path or ())
    spec = resolve_kind(kind, path)
    return ResourceBinding(
        field_id=field_id,
        route=route if route.startswith("/") else "/" + route,
        kind=spec.kind,
        sub_path=path if spec.requires_sub_path else (),
        current_value=current_value,
        transport=spec.transport,
    )


def create_binding_for_field_id(
    field_id: str,
    *,
    namespace: str = DEFAULT_NAMESPACE,
    current_value: Any = None,
) -> ResourceBinding:
    """Build a binding whose route and sub-path come from the field id."""
    route, sub_path = route_for_field_id(field_id, namespace)
    return create_binding(field_id, route, sub_path=sub_path, current_value=current_value)
