"""
HTTP app for a preview manager.

``create_app()`` puts one ``PreviewManager`` on ``app.state`` and mounts the
REST pass-through, the preview/pane endpoints and ``/health`` around it.
Routers reach the manager only through ``api.deps``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bound_preview import __version__
from bound_preview.api.middleware.errors import bound_preview_error_handler, unhandled_exception_handler
from bound_preview.api.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from bound_preview.api.routers import health, preview, rest
from bound_preview.core.errors import BoundPreviewError
from bound_preview.core.logging import configure_logging, get_logger
from bound_preview.core.settings import BoundPreviewSettings, get_settings
from bound_preview.manager import PreviewManager
from bound_preview.rest.resources import ResourceCollection, register_collection_routes

log = get_logger("bound_preview.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    log.info("api.start", version=app.version, rest_api_root=app.state.settings.rest_api_root)
    try:
        yield
    finally:
        # Unsaved edits die with the process.
        await app.state.manager.end_session()
        log.info("api.stop")


def build_default_manager(settings: BoundPreviewSettings) -> PreviewManager:
    """Manager serving ``pages`` and ``posts``, seeded when ``demo_content`` is on."""
    manager = PreviewManager(settings, capabilities=settings.capabilities)
    pages = ResourceCollection(name="pages", edit_capability="edit_pages")
    posts = ResourceCollection(name="posts", edit_capability="edit_posts")
    if settings.demo_content:
        pages.add(4, title="Sample Page", content="<p>This is an example page.</p>", status="publish")
        posts.add(1, title="Hello world!", content="<p>Welcome.</p>", status="publish")
    for collection in (pages, posts):
        register_collection_routes(manager.server, collection)
    return manager


def create_app(
    *,
    settings: BoundPreviewSettings | None = None,
    manager: PreviewManager | None = None,
) -> FastAPI:
    """App factory (``uvicorn --factory``); tests pass their own settings or manager."""
    if settings is None:
        settings = manager.settings if manager is not None else get_settings()
    configure_logging(settings=settings)

    app = FastAPI(title="bound-preview", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.manager = manager or build_default_manager(settings)

    app.add_middleware(RequestIDMiddleware)
    # The preview frame may live on another origin and must read the context header.
    # Cookies are only shared with explicitly listed origins.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[settings.context_header, REQUEST_ID_HEADER],
    )

    app.add_exception_handler(BoundPreviewError, bound_preview_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router, tags=["health"])
    app.include_router(rest.router, tags=["rest"])
    app.include_router(preview.router, tags=["preview"])
    return app
