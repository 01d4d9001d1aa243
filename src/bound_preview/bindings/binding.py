"""Resource binding record."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class _Unset:
    """Marker for "no dirty value"; ``None`` is a legitimate edit."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class BindingKind(str, Enum):
    """Closed set of binding kinds.

    ``rest_resource`` binds a field to a whole resource body; ``rest_field``
    binds it to one (possibly nested) property of the body.
    """

    REST_RESOURCE = "rest_resource"
    REST_FIELD = "rest_field"


class Transport(str, Enum):
    """How an edit reaches the preview. Only full refresh is supported."""

    REFRESH = "refresh"


@dataclass
class ResourceBinding:
    """A configuration field bound to a REST route.

    Attributes:
        field_id: Configuration field identifier (unique in a registry)
        route: REST route the field reads from and writes to
        kind: Binding kind resolved at registration
        sub_path: Keys into the resource body for ``rest_field`` bindings
        current_value: Last known server value
        dirty_value: Unsaved local edit, ``UNSET`` when there is none
        transport: Always ``refresh``
    """

    field_id: str
    route: str
    kind: BindingKind = BindingKind.REST_RESOURCE
    sub_path: tuple[str, ...] = ()
    current_value: Any = None
    dirty_value: Any = field(default=UNSET)
    transport: Transport = Transport.REFRESH

    @property
    def has_dirty_value(self) -> bool:
        return self.dirty_value is not UNSET

    @property
    def is_dirty(self) -> bool:
        """True when a dirty value exists and differs from the current value."""
        return self.has_dirty_value and self.dirty_value != self.current_value

    def overlay(self, body: Any) -> Any:
        """Return ``body`` with this binding's dirty value applied.

        Rendered properties (``{"raw": ..., "rendered": ...}``) get both
        members replaced when the edit is a plain value.
        """
        if not self.has_dirty_value:
            return body
        if self.kind is BindingKind.REST_RESOURCE or not self.sub_path:
            return copy.deepcopy(self.dirty_value)
        if not isinstance(body, dict):
            return body

        result = copy.deepcopy(body)
        target = result
        for key in self.sub_path[:-1]:
            child = target.get(key)
            if not isinstance(child, dict):
                child = {}
                target[key] = child
            target = child

        leaf = self.sub_path[-1]
        existing = target.get(leaf)
        value = copy.deepcopy(self.dirty_value)
        if isinstance(existing, dict) and "raw" in existing and not isinstance(value, dict):
            target[leaf] = {**existing, "raw": value, "rendered": value}
        else:
            target[leaf] = value
        return result

    def server_value(self, body: Any) -> Any:
        """This binding's value inside a server response body.

        Rendered properties yield their ``raw`` member when present.
        """
        if self.kind is BindingKind.REST_RESOURCE or not self.sub_path:
            return copy.deepcopy(body)
        value = body
        for key in self.sub_path:
            if not isinstance(value, dict) or key not in value:
                return None
            value = value[key]
        if isinstance(value, dict) and "raw" in value:
            value = value["raw"]
        return copy.deepcopy(value)

    def write_payload(self) -> Any:
        """Body to send when publishing the dirty value."""
        if self.kind is BindingKind.REST_RESOURCE or not self.sub_path:
            return self.dirty_value
        payload: Any = self.dirty_value
        for key in reversed(self.sub_path):
            payload = {key: payload}
        return payload
