"""Settings for bound-preview.

Everything the dispatcher, synchronizer, API and CLI can be tuned with is a
field on ``BoundPreviewSettings`` and can be set through a ``BOUND_PREVIEW_*``
environment variable or a ``.env`` file.

    >>> BoundPreviewSettings(debounce_seconds=0.05, _env_file=None).debounce_seconds
    0.05
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BoundPreviewSettings(BaseSettings):
    """Settings shared by the preview manager, the HTTP API and the CLI.

    Constructor arguments beat ``BOUND_PREVIEW_*`` variables, which beat
    ``.env``, which beats the defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOUND_PREVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Network ──────────────────────────────────────────────────
    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8420, description="Bind port")
    rest_api_root: str = Field(
        default="http://127.0.0.1:8420/rest/",
        description="Public URL of the REST root handed to preview clients",
    )
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Origins of the preview frame/pane allowed to call the API cross-origin",
    )

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # ── Preview ──────────────────────────────────────────────────
    default_stylesheet: str = Field(default="default", description="Theme previewed when none is given")
    debounce_seconds: float = Field(default=0.25, ge=0, description="Synchronizer debounce delay")
    session_ttl_seconds: int = Field(default=3600, gt=0, description="Preview session lifetime")
    nonce_lifetime_seconds: int = Field(default=86400, gt=1, description="Nonce lifetime (two ticks)")
    nonce_secret: str = Field(default="change-me", min_length=1, description="HMAC key for nonces")
    capabilities: list[str] = Field(
        default_factory=lambda: ["edit_pages", "edit_posts"],
        description="Capabilities granted to requests served by this process",
    )
    demo_content: bool = Field(default=True, description="Seed pages/posts collections on startup")
    context_header: str = Field(
        default="X-Bound-Preview-Context",
        description="Response header naming the context that produced the result",
    )

    @field_validator("rest_api_root")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else value + "/"


@lru_cache(maxsize=1)
def get_settings() -> BoundPreviewSettings:
    """Process-wide settings, read from the environment on first call."""
    return BoundPreviewSettings()
