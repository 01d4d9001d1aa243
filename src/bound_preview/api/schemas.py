"""
API schemas — request bodies, response envelopes and RFC 7807 errors.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs»."""

    type: str = Field(default="about:blank", description="URI reference identifying the problem type")
    title: str = Field(description="Short human-readable summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Explanation specific to this occurrence")
    instance: str = Field(default="", description="URI of the request that failed")
    code: str | None = Field(default=None, description="Machine-readable error code")


class SessionStartRequest(BaseModel):
    stylesheet: str | None = Field(default=None, description="Theme to preview")
    snapshot: dict[str, Any] = Field(default_factory=dict, description="Configuration snapshot")


class SessionResponse(BaseModel):
    session_id: str
    stylesheet: str
    expires_at: float
    preview_nonce: str


class DirtySettingsRequest(BaseModel):
    """Posted field values, keyed by field id."""

    values: dict[str, Any] = Field(default_factory=dict)


class DirtySettingsResponse(BaseModel):
    registered: list[str]
    state: str


class SyncResponse(BaseModel):
    state: str
    requests_sent: int
    last_error: dict[str, Any] | None = None


class PublishResponse(BaseModel):
    committed: list[str]
    failed: dict[str, dict[str, Any]]


class ControlSchema(BaseModel):
    id: str
    section: str
    setting: str
    priority: int
    type: str


class SectionSchema(BaseModel):
    id: str
    title: str
    controls: list[ControlSchema]


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    preview_active: bool
