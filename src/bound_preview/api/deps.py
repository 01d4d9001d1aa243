"""
FastAPI dependency injection — the preview manager and nonce checks.

Usage in routers::

    from bound_preview.api.deps import Manager, PreviewNonce

    @router.get("/things")
    def things(manager: Manager, nonce: PreviewNonce):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from bound_preview.core.errors import SessionExpiredError
from bound_preview.manager import PreviewManager
from bound_preview.sync.fetchers import NONCE_HEADER


def get_manager(request: Request) -> PreviewManager:
    """The manager stashed on app state by ``create_app``."""
    return request.app.state.manager


Manager = Annotated[PreviewManager, Depends(get_manager)]


def require_preview_nonce(
    manager: Manager,
    nonce: Annotated[str | None, Header(alias=NONCE_HEADER)] = None,
) -> str:
    """Reject the request unless it carries a valid nonce for the active session."""
    if not nonce:
        raise SessionExpiredError(f"Missing {NONCE_HEADER} header")
    manager.require_session().check_nonce(nonce)
    return nonce


PreviewNonce = Annotated[str, Depends(require_preview_nonce)]
