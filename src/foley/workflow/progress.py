"""Structured progress events emitted by the orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from foley.domain.enums import PipelineStage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """One observable step of a pipeline run."""

    stage: PipelineStage
    message: str
    event_index: int | None = None  # Session position, when event-specific
    total: int | None = None  # Events in the session

    def format(self) -> str:
        """Render as a single terminal line, e.g. "[ENGINE 2/3] Cache hit"."""
        label = self.stage.value.upper()
        if self.event_index is not None and self.total:
            label = f"{label} {self.event_index + 1}/{self.total}"
        return f"[{label}] {self.message}"


# Type alias for progress callback
ProgressCallback = Callable[[ProgressEvent], None]


def emit(callback: ProgressCallback | None, event: ProgressEvent) -> None:
    """Deliver ``event`` to ``callback``; observer failures are only logged."""
    if callback is None:
        return
    try:
        callback(event)
    except Exception as e:
        logger.warning("Progress callback raised %s: %s", type(e).__name__, e)
