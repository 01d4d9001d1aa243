"""Pane layout for REST-bound fields.

All bindings appear in a single "REST Resources" section. A binding that
already has a control keeps it; every other binding gets a generated control,
with priorities assigned ``0..n-1`` in registration order.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from bound_preview.bindings.registry import BindingRegistry

SECTION_ID = "rest_resources"
SECTION_TITLE = "REST Resources"
CONTROL_TYPE = "rest_resource"


@dataclass
class Control:
    id: str
    section: str
    setting: str
    priority: int
    type: str = CONTROL_TYPE


@dataclass
class Section:
    id: str
    title: str
    controls: list[Control] = field(default_factory=list)


def build_controls(
    registry: BindingRegistry,
    existing: Mapping[str, Control] | None = None,
) -> Section:
    """Lay out controls for every binding in ``registry``.

    Args:
        registry: Source of bindings
        existing: Controls already registered elsewhere, keyed by setting id
    """
    existing = existing or {}
    section = Section(id=SECTION_ID, title=SECTION_TITLE)
    priority = 0
    for binding in registry.bindings():
        if binding.field_id in existing:
            continue
        section.controls.append(
            Control(
                id=binding.field_id,
                section=SECTION_ID,
                setting=binding.field_id,
                priority=priority,
            )
        )
        priority += 1
    return section
