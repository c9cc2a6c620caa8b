"""Pipeline workflow: session state, orchestration and progress reporting."""

from foley.workflow.exceptions import (
    DetectionError,
    DirectionError,
    EventNotFoundError,
    PipelineError,
    RunCancelled,
    SessionFileError,
)
from foley.workflow.orchestrator import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_EVENTS,
    PipelineOrchestrator,
    improved_query,
    manual_edit_query,
)
from foley.workflow.progress import ProgressCallback, ProgressEvent
from foley.workflow.session import Session, SessionCache

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_EVENTS",
    "DetectionError",
    "DirectionError",
    "EventNotFoundError",
    "PipelineError",
    "PipelineOrchestrator",
    "ProgressCallback",
    "ProgressEvent",
    "RunCancelled",
    "Session",
    "SessionCache",
    "SessionFileError",
    "improved_query",
    "manual_edit_query",
]
