"""Domain enums for Foley.

This module contains the enums shared by the engine, the orchestrator and
the session layer.
"""

from enum import Enum


class EventStatus(Enum):
    """Position of a SoundEvent in the pipeline state machine.

    Transitions:
        detected -> directing -> sourcing -> reviewing -> ready | rejected
        rejected -> sourcing (bounded regeneration)
    """

    DETECTED = "detected"
    DIRECTING = "directing"
    SOURCING = "sourcing"
    REVIEWING = "reviewing"
    REJECTED = "rejected"
    READY = "ready"


class Provenance(Enum):
    """Where an event's audio asset came from."""

    CACHE_HIT = "cache-hit"  # Reused from the asset library
    SYNTHESIZED = "synthesized"  # Freshly generated
    PENDING = "pending"  # Placeholder, no real audio yet


class PipelineStage(Enum):
    """Pipeline stage names used for progress events and log context."""

    SPOTTER = "spotter"
    DIRECTOR = "director"
    ENGINE = "engine"
    QC = "qc"
    SYSTEM = "system"
