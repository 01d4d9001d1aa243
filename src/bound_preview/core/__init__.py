"""
Core primitives shared by every bound-preview component.

Modules:
    errors      Typed error hierarchy
    settings    Environment-driven settings (pydantic-settings)
    logging     structlog configuration, context and timing helpers
    events      Ordered in-process event bus
"""

from bound_preview.core.errors import (
    BoundPreviewError,
    ConfigError,
    DispatchError,
    ErrorCategory,
    ErrorContext,
    RestError,
    SessionExpiredError,
    SyncError,
    UnknownBindingError,
    UnknownBindingKindError,
)

__all__ = [
    "BoundPreviewError",
    "ConfigError",
    "DispatchError",
    "ErrorCategory",
    "ErrorContext",
    "RestError",
    "SessionExpiredError",
    "SyncError",
    "UnknownBindingError",
    "UnknownBindingKindError",
]
