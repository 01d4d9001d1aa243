"""
structlog setup for the API process and the CLI.

Level and format come from ``BoundPreviewSettings`` (``BOUND_PREVIEW_LOG_LEVEL``,
``BOUND_PREVIEW_LOG_FORMAT``) unless passed explicitly. Entries go through the
stdlib ``logging`` tree so uvicorn and httpx records share the same stream.
"""

from __future__ import annotations

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor

from bound_preview.core.logging.context import add_context_processor
from bound_preview.core.settings import BoundPreviewSettings, get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

# Per-request chatter that only helps while debugging.
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_configured = False


def _processors() -> list[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_context_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    level: LogLevel | None = None,
    format: LogFormat | None = None,
    *,
    force: bool = False,
    settings: BoundPreviewSettings | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Only the first call takes effect unless ``force`` is set, so the API
    lifespan and the CLI callback can both call it.
    """
    global _configured
    if _configured and not force:
        return

    settings = settings or get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper())
    log_format = (format or settings.log_format).lower()

    structlog.configure(
        processors=[*_processors(), _renderer(log_format)],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level, force=True)
    logging.getLogger("bound_preview").setLevel(log_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(log_level if log_level <= logging.DEBUG else logging.WARNING)

    _configured = True


def is_configured() -> bool:
    return _configured
