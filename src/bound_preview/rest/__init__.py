"""
REST layer: request/response models, the in-process server, resource
collections and the context-elevating dispatcher.
"""

from bound_preview.rest.dispatcher import ContextElevatingDispatcher
from bound_preview.rest.models import DispatchContext, FetchResult, RestRequest, RestResponse
from bound_preview.rest.resources import ResourceCollection, register_collection_routes
from bound_preview.rest.server import RestServer

__all__ = [
    "ContextElevatingDispatcher",
    "DispatchContext",
    "FetchResult",
    "ResourceCollection",
    "RestRequest",
    "RestResponse",
    "RestServer",
    "register_collection_routes",
]
