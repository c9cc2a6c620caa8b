"""Pipeline context for structured logging.

Stage name and event index are carried in contextvars so every record
emitted while an event is being processed can be attributed to it, no
matter which module logs it.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_event_index: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "event_index", default=None
)


def set_pipeline_context(stage: str, event_index: int | None = None) -> None:
    """Set the current pipeline context.

    Args:
        stage: Stage name (e.g., "engine").
        event_index: Zero-based index of the event being processed, or None.
    """
    _stage.set(stage)
    _event_index.set(event_index)


def clear_pipeline_context() -> None:
    """Clear the current pipeline context."""
    _stage.set(None)
    _event_index.set(None)


def get_pipeline_context() -> tuple[str | None, int | None]:
    """Return (stage, event_index); either may be None."""
    return _stage.get(), _event_index.get()


@contextmanager
def pipeline_context(
    stage: str, event_index: int | None = None
) -> Generator[None, None, None]:
    """Set pipeline context for the duration of a block.

    The previous context is restored on exit, so contexts nest.

    Example:
        with pipeline_context("engine", 2):
            logger.info("Cache miss")  # Logged as [ENGINE#2]
    """
    old_stage = _stage.get()
    old_index = _event_index.get()
    try:
        set_pipeline_context(stage, event_index)
        yield
    finally:
        _stage.set(old_stage)
        _event_index.set(old_index)


class PipelineContextFilter(logging.Filter):
    """Logging filter that injects pipeline context into log records.

    Adds ``stage`` and ``event_index`` attributes for JSON output and a
    compact ``stage_tag`` such as ``[ENGINE#2] `` for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        stage, event_index = get_pipeline_context()

        record.stage = stage
        record.event_index = event_index

        if stage:
            if event_index is not None:
                record.stage_tag = f"[{stage.upper()}#{event_index}] "
            else:
                record.stage_tag = f"[{stage.upper()}] "
        else:
            record.stage_tag = ""

        return True  # Never filter out records
