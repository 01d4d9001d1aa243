"""
structlog logging with preview context.

    configure_logging()                     once per process (API lifespan, CLI)
    log = get_logger(__name__)
    bind_context(session_id=session.session_id)
    with push_context(route=route): ...     scoped to a task or request
    with log_step("manager.publish"): ...   timed, logged start/end
"""

from bound_preview.core.logging.config import configure_logging, is_configured
from bound_preview.core.logging.context import (
    LogContext,
    add_context_processor,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
    set_context,
)
from bound_preview.core.logging.timing import StepTimer, log_step, timed_block

__all__ = [
    "LogContext",
    "StepTimer",
    "add_context_processor",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_context",
    "get_logger",
    "is_configured",
    "log_step",
    "push_context",
    "set_context",
    "timed_block",
]
