"""Workflow exceptions surfaced to callers of the orchestrator."""


class PipelineError(Exception):
    """Base exception for failures that abort a pipeline run."""

    pass


class DetectionError(PipelineError):
    """Raised when detection fails or finds nothing; no run starts."""

    pass


class DirectionError(PipelineError):
    """Raised when direction fails; events keep their prior state."""

    pass


class RunCancelled(PipelineError):
    """Raised when a run is cancelled between stages."""

    pass


class EventNotFoundError(PipelineError):
    """Raised when a manual edit names an event not in the session."""

    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__(f"No event with id {event_id!r} in session")


class SessionFileError(PipelineError):
    """Raised when a saved session cannot be read or written."""

    pass
