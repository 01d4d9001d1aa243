"""Resource binding registry.

Manifesto:
    One place knows which configuration fields are bound to which REST
    routes and which of them carry unsaved edits. The synchronizer reads
    routes from it, publish reads dirty values from it, and nothing else
    keeps its own copy.

Ordering is registration order. Re-registering a field id replaces the
binding (last registration wins, so a reloaded configuration schema can
re-bind fields) but keeps its original position.

Tags:
    bindings, registry, dirty-values
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from bound_preview.bindings.binding import UNSET, BindingKind, ResourceBinding
from bound_preview.bindings.kinds import create_binding
from bound_preview.core.errors import UnknownBindingError
from bound_preview.core.logging import get_logger

log = get_logger(__name__)


class BindingRegistry:
    """Maps field ids to ``ResourceBinding`` records."""

    def __init__(self) -> None:
        self._bindings: dict[str, ResourceBinding] = {}

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def register(
        self,
        route: str,
        field_id: str,
        *,
        sub_path: Sequence[str] | None = None,
        kind: BindingKind | str | None = None,
        current_value: Any = None,
    ) -> ResourceBinding:
        """Create or replace the binding for ``field_id``.

        A dirty value carries over to the replacement only when the route is
        unchanged; it would otherwise be an edit of a different resource.
        """
        binding = create_binding(
            field_id,
            route,
            sub_path=sub_path,
            kind=kind,
            current_value=current_value,
        )
        previous = self._bindings.get(field_id)
        if previous is not None:
            if previous.route == binding.route:
                binding.dirty_value = previous.dirty_value
                if current_value is None:
                    binding.current_value = previous.current_value
            log.debug(
                "binding.replaced",
                field_id=field_id,
                old_route=previous.route,
                route=binding.route,
            )
        else:
            log.debug("binding.registered", field_id=field_id, route=binding.route, kind=binding.kind.value)
        self._bindings[field_id] = binding
        return binding

    def get(self, field_id: str) -> ResourceBinding:
        try:
            return self._bindings[field_id]
        except KeyError:
            raise UnknownBindingError(field_id) from None

    def bindings(self) -> list[ResourceBinding]:
        """All bindings in registration order."""
        return list(self._bindings.values())

    # ── Dirty values ────────────────────────────────────────────────────

    def set_dirty(self, field_id: str, value: Any) -> ResourceBinding:
        binding = self.get(field_id)
        binding.dirty_value = value
        return binding

    def get_dirty_values(self) -> dict[str, Any]:
        """``field_id → dirty value`` for bindings whose edit differs from the server value."""
        return {b.field_id: b.dirty_value for b in self._bindings.values() if b.is_dirty}

    def commit(self, field_id: str) -> ResourceBinding:
        """Promote the dirty value to current. Idempotent."""
        binding = self.get(field_id)
        if binding.has_dirty_value:
            binding.current_value = binding.dirty_value
            binding.dirty_value = UNSET
            log.debug("binding.committed", field_id=field_id)
        return binding

    def discard(self, field_id: str) -> ResourceBinding:
        """Drop the dirty value without committing it."""
        binding = self.get(field_id)
        binding.dirty_value = UNSET
        return binding

    def discard_all(self) -> None:
        """Drop every dirty value (preview session ended)."""
        for binding in self._bindings.values():
            binding.dirty_value = UNSET

    # ── Lookup / maintenance ────────────────────────────────────────────

    def refresh(self, rendered_field_ids: Iterable[str]) -> list[str]:
        """Prune bindings for fields that are no longer rendered.

        Returns:
            Field ids that were removed
        """
        keep = set(rendered_field_ids)
        removed = [fid for fid in self._bindings if fid not in keep]
        for fid in removed:
            del self._bindings[fid]
        if removed:
            log.debug("binding.pruned", field_ids=removed)
        return removed

    def routes_for(self, field_ids: Iterable[str]) -> list[str]:
        """Unique routes of ``field_ids``, first-seen order."""
        routes: dict[str, None] = {}
        for fid in field_ids:
            routes.setdefault(self.get(fid).route, None)
        return list(routes)

    def fields_for_route(self, route: str) -> list[ResourceBinding]:
        return [b for b in self._bindings.values() if b.route == route]
