"""HTTP surface (FastAPI) for bound-preview."""

from bound_preview.api.app import build_default_manager, create_app

__all__ = ["build_default_manager", "create_app"]
