"""
Preview session endpoints.

``POST /preview/session`` starts a session and returns its nonce; every other
endpoint requires that nonce in ``X-Preview-Nonce``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from bound_preview.api.deps import Manager, PreviewNonce
from bound_preview.api.schemas import (
    DirtySettingsRequest,
    DirtySettingsResponse,
    PublishResponse,
    SectionSchema,
    SessionResponse,
    SessionStartRequest,
    SyncResponse,
)
from bound_preview.core.errors import BoundPreviewError

router = APIRouter()


@router.post("/preview/session", response_model=SessionResponse)
async def start_session(body: SessionStartRequest, manager: Manager) -> SessionResponse:
    session = manager.start_session(body.stylesheet, body.snapshot)
    return SessionResponse(
        session_id=session.session_id,
        stylesheet=session.stylesheet,
        expires_at=session.expires_at,
        preview_nonce=session.issue_nonce(),
    )


@router.delete("/preview/session", status_code=204)
async def end_session(manager: Manager, nonce: PreviewNonce) -> None:
    await manager.end_session()


@router.get("/preview/bootstrap")
async def preview_bootstrap(manager: Manager, nonce: PreviewNonce) -> dict[str, Any]:
    """Bootstrap arguments for the preview frame."""
    return manager.preview_bootstrap()


@router.get("/pane/bootstrap")
async def pane_bootstrap(manager: Manager, nonce: PreviewNonce) -> dict[str, Any]:
    """Bootstrap arguments for the pane, including the REST schema."""
    return manager.pane_bootstrap()


@router.get("/pane/controls", response_model=SectionSchema)
async def pane_controls(manager: Manager, nonce: PreviewNonce) -> SectionSchema:
    section = manager.build_controls()
    return SectionSchema.model_validate(section, from_attributes=True)


@router.post("/preview/settings", response_model=DirtySettingsResponse)
async def post_settings(body: DirtySettingsRequest, manager: Manager, nonce: PreviewNonce) -> DirtySettingsResponse:
    """Bind posted REST field ids and queue a preview sync for their routes."""
    bindings = manager.register_dynamic_settings(body.values)
    synchronizer = manager.synchronizer
    for binding in bindings:
        synchronizer.request_sync(binding.route)
    return DirtySettingsResponse(registered=[b.field_id for b in bindings], state=synchronizer.state.value)


@router.post("/preview/sync", response_model=SyncResponse)
async def flush_sync(manager: Manager, nonce: PreviewNonce) -> SyncResponse:
    """Run any pending sync now and report the resulting state."""
    synchronizer = manager.synchronizer
    state = await synchronizer.flush()
    error = synchronizer.last_error
    return SyncResponse(
        state=state.value,
        requests_sent=synchronizer.requests_sent,
        last_error=error.to_dict() if isinstance(error, BoundPreviewError) else None,
    )


@router.post("/preview/publish", response_model=PublishResponse)
async def publish(manager: Manager, nonce: PreviewNonce) -> PublishResponse:
    report = await manager.publish()
    return PublishResponse(committed=report.committed, failed=report.failed)
