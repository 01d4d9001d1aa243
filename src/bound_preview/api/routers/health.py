"""Liveness probe; reports whether a preview session is running."""

from __future__ import annotations

from fastapi import APIRouter

from bound_preview import __version__
from bound_preview.api.deps import Manager
from bound_preview.api.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(manager: Manager) -> HealthResponse:
    return HealthResponse(version=__version__, preview_active=manager.is_preview())
