"""
In-memory resource collections exposed as REST routes.

Each collection gets two routes under a namespace (``wp/v2`` by default):

    /wp/v2/<name>                  GET list
    /wp/v2/<name>/(?P<id>\\d+)     GET item, POST/PUT update

Field visibility follows the schema: each property lists the contexts it is
shown in, and "rendered" fields (``{"raw": ..., "rendered": ...}``) only carry
``raw`` in ``edit`` context. Reading in ``edit`` context and any write require
the collection's edit capability.
"""

from __future__ import annotations

import copy
import html
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from bound_preview.core.errors import RestError
from bound_preview.rest.models import DispatchContext, RestRequest
from bound_preview.rest.server import RestServer

ALL_CONTEXTS = ["view", "edit", "embed"]

DEFAULT_PAGE_SCHEMA: dict[str, Any] = {
    "id": {"type": "integer", "context": ALL_CONTEXTS, "readonly": True},
    "title": {"type": "object", "context": ALL_CONTEXTS, "rendered": True},
    "content": {"type": "object", "context": ["view", "edit"], "rendered": True},
    "status": {"type": "string", "context": ["view", "edit"]},
    "password": {"type": "string", "context": ["edit"]},
}


def _render(raw: Any) -> Any:
    return html.escape(raw) if isinstance(raw, str) else raw


@dataclass
class ResourceCollection:
    """A named set of items with a field schema.

    Items are stored in raw form: rendered properties keep only the raw value.
    """

    name: str
    edit_capability: str
    properties: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_PAGE_SCHEMA))
    items: dict[int, dict[str, Any]] = field(default_factory=dict)
    render: Callable[[Any], Any] = _render

    def add(self, item_id: int, **values: Any) -> dict[str, Any]:
        item = {"id": item_id}
        item.update(values)
        self.items[item_id] = item
        return item

    def get(self, item_id: int) -> dict[str, Any]:
        try:
            return self.items[item_id]
        except KeyError:
            raise RestError(f"rest_{self.name}_invalid_id", "Invalid ID.", status=404) from None

    def update(self, item_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        item = self.get(item_id)
        for key, value in changes.items():
            spec = self.properties.get(key)
            # Unknown and read-only properties are ignored.
            if spec is None or spec.get("readonly"):
                continue
            if spec.get("rendered") and isinstance(value, dict):
                value = value.get("raw", value.get("rendered"))
            item[key] = value
        return item

    def prepare(self, item: dict[str, Any], context: DispatchContext) -> dict[str, Any]:
        """Shape ``item`` for ``context``."""
        data: dict[str, Any] = {}
        for key, spec in self.properties.items():
            if key not in item or context.value not in spec.get("context", ALL_CONTEXTS):
                continue
            value = item[key]
            if spec.get("rendered"):
                shaped = {"rendered": self.render(value)}
                if context is DispatchContext.EDIT:
                    shaped["raw"] = value
                value = shaped
            data[key] = copy.deepcopy(value)
        return data

    def schema(self) -> dict[str, Any]:
        return {
            "$schema": "http://json-schema.org/draft-04/schema#",
            "title": self.name,
            "type": "object",
            "properties": copy.deepcopy(self.properties),
        }


def register_collection_routes(
    server: RestServer,
    collection: ResourceCollection,
    namespace: str = "wp/v2",
) -> None:
    """Expose ``collection`` on ``server`` under ``/<namespace>/<name>``."""
    base = f"/{namespace}/{collection.name}"
    context_arg = {"context": {"default": "view", "enum": ALL_CONTEXTS}}

    def list_items(request: RestRequest) -> list[dict[str, Any]]:
        return [collection.prepare(item, request.context) for item in collection.items.values()]

    def get_item(request: RestRequest) -> dict[str, Any]:
        item = collection.get(int(request.url_params["id"]))
        return collection.prepare(item, request.context)

    def update_item(request: RestRequest) -> dict[str, Any]:
        if collection.edit_capability not in request.capabilities:
            raise RestError("rest_cannot_edit", "Sorry, you are not allowed to edit this resource.", status=403)
        if not isinstance(request.body, dict):
            raise RestError("rest_invalid_json", "Invalid JSON body passed.", status=400)
        item = collection.update(int(request.url_params["id"]), request.body)
        return collection.prepare(item, DispatchContext.EDIT)

    server.register_route(
        base,
        ["GET"],
        list_items,
        namespace=namespace,
        edit_capability=collection.edit_capability,
        schema=collection.schema(),
        args=context_arg,
    )
    item_pattern = base + r"/(?P<id>\d+)"
    server.register_route(
        item_pattern,
        ["GET"],
        get_item,
        namespace=namespace,
        edit_capability=collection.edit_capability,
        schema=collection.schema(),
        args=context_arg,
    )
    server.register_route(item_pattern, ["POST", "PUT", "PATCH"], update_item, namespace=namespace)
