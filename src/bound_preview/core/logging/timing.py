"""
Timed steps.

``log_step("manager.publish")`` logs ``manager.publish.start`` at DEBUG,
then ``manager.publish.end`` with ``duration_ms`` (or ``.error`` and
re-raises). While the step runs its span id is in the log context, so nested
steps record their parent.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from bound_preview.core.logging.context import get_context, get_logger, push_context

_log = get_logger("bound_preview.timing")


class StepTimer:
    """Wall-clock span of one step plus metrics reported when it ends."""

    def __init__(self, step: str, parent_span_id: str | None = None, **metrics: Any) -> None:
        self.step = step
        self.span_id = secrets.token_hex(4)
        self.parent_span_id = parent_span_id
        self.metrics: dict[str, Any] = dict(metrics)
        self.started_at = time.perf_counter()
        self.ended_at: float | None = None

    def stop(self) -> StepTimer:
        if self.ended_at is None:
            self.ended_at = time.perf_counter()
        return self

    @property
    def duration_ms(self) -> float:
        end = time.perf_counter() if self.ended_at is None else self.ended_at
        return (end - self.started_at) * 1000

    def add_metric(self, key: str, value: Any) -> StepTimer:
        self.metrics[key] = value
        return self

    def to_log_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"span_id": self.span_id, "duration_ms": round(self.duration_ms, 2)}
        if self.parent_span_id is not None:
            data["parent_span_id"] = self.parent_span_id
        return {**data, **self.metrics}


@contextmanager
def timed_block(step: str = "block") -> Iterator[StepTimer]:
    """Measure without logging."""
    timer = StepTimer(step, get_context().span_id)
    try:
        yield timer
    finally:
        timer.stop()


@contextmanager
def log_step(event: str, level: str = "info", **metrics: Any) -> Iterator[StepTimer]:
    timer = StepTimer(event, get_context().span_id, **metrics)
    with push_context(span_id=timer.span_id, parent_span_id=timer.parent_span_id, step=event):
        _log.debug(f"{event}.start", **metrics)
        try:
            yield timer
        except Exception as e:
            _log.error(f"{event}.error", error_type=type(e).__name__, error=str(e), **timer.stop().to_log_dict())
            raise
        timer.stop()
    getattr(_log, level)(f"{event}.end", **timer.to_log_dict())
