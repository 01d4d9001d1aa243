"""
Configuration-field ↔ REST-route bindings.

Modules:
    binding     ResourceBinding record and the binding-kind enum
    kinds       Field-id parsing and the binding-kind factory
    registry    BindingRegistry (dirty values, commit/discard, pruning)
    controls    Pane section/control layout
"""

from bound_preview.bindings.binding import UNSET, BindingKind, ResourceBinding, Transport
from bound_preview.bindings.controls import Control, Section, build_controls
from bound_preview.bindings.kinds import (
    create_binding,
    create_binding_for_field_id,
    is_rest_field_id,
    parse_field_id,
    route_for_field_id,
)
from bound_preview.bindings.registry import BindingRegistry

__all__ = [
    "UNSET",
    "BindingKind",
    "BindingRegistry",
    "Control",
    "ResourceBinding",
    "Section",
    "Transport",
    "build_controls",
    "create_binding",
    "create_binding_for_field_id",
    "is_rest_field_id",
    "parse_field_id",
    "route_for_field_id",
]
