"""Domain models and enums for Foley.

This package contains the core types shared across the pipeline:

- Domain models: SoundEvent, SoundLayers, AudioAsset, DetectedEvent,
  ReviewVerdict, AssetCandidate, EngineResult
- Domain enums: EventStatus, Provenance, PipelineStage

Usage:
    from foley.domain import SoundEvent, EventStatus
"""

from .enums import EventStatus, PipelineStage, Provenance
from .models import (
    PLACEHOLDER_URI,
    AssetCandidate,
    AudioAsset,
    DetectedEvent,
    EngineResult,
    ReviewVerdict,
    SoundEvent,
    SoundLayers,
)

__all__ = [
    # Models
    "AssetCandidate",
    "AudioAsset",
    "DetectedEvent",
    "EngineResult",
    "ReviewVerdict",
    "SoundEvent",
    "SoundLayers",
    "PLACEHOLDER_URI",
    # Enums
    "EventStatus",
    "PipelineStage",
    "Provenance",
]
