"""Domain models for Foley.

These models represent the pipeline's working data independent of any
provider or storage backend. SoundEvent is mutated in place as it moves
through the stages; the small result types are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from foley.core.timestamps import parse_timestamp
from foley.domain.enums import EventStatus, Provenance

PLACEHOLDER_URI = "placeholder"


@dataclass
class SoundLayers:
    """Three synthesis-ready queries for one event, by prominence."""

    spot: str  # Primary hard sound
    texture: str  # Material detail
    vibe: str  # Atmospheric tone

    def to_dict(self) -> dict[str, str]:
        return {"spot": self.spot, "texture": self.texture, "vibe": self.vibe}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SoundLayers:
        return cls(
            spot=str(data["spot"]),
            texture=str(data["texture"]),
            vibe=str(data["vibe"]),
        )


@dataclass
class AudioAsset:
    """Handle to a produced audio clip.

    The raw bytes are held in memory only for the lifetime of a run and are
    never written into sessions or cue sheets; ``path`` records where they
    were exported, if anywhere.
    """

    uri: str
    mime_type: str = "audio/mpeg"
    data: bytes | None = field(default=None, repr=False, compare=False)
    description: str | None = None
    path: str | None = None

    @property
    def is_placeholder(self) -> bool:
        """Return True if this asset stands in for missing audio."""
        return self.uri == PLACEHOLDER_URI

    @classmethod
    def placeholder(cls, description: str | None = None) -> AudioAsset:
        """Return the deterministic placeholder asset."""
        return cls(uri=PLACEHOLDER_URI, mime_type="audio/wav", description=description)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "mime_type": self.mime_type,
            "description": self.description,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AudioAsset:
        return cls(
            uri=str(data["uri"]),
            mime_type=data.get("mime_type", "audio/mpeg"),
            description=data.get("description"),
            path=data.get("path"),
        )


@dataclass
class SoundEvent:
    """One detected, timestamped action that needs a sound effect."""

    id: str
    timestamp: str  # As reported by detection (MM:SS, HH:MM:SS or seconds)
    description: str
    confidence: float
    layers: SoundLayers | None = None
    status: EventStatus = EventStatus.DETECTED
    audio_asset: AudioAsset | None = None
    provenance: Provenance = Provenance.PENDING
    qc_feedback: str | None = None
    regeneration_count: int = 0
    user_feedback: str | None = None

    @property
    def seconds(self) -> float | None:
        """Return the timestamp as seconds, or None if unparseable."""
        return parse_timestamp(self.timestamp)

    @property
    def spot_query(self) -> str:
        """Return the primary engine query, falling back to the description."""
        if self.layers is not None and self.layers.spot:
            return self.layers.spot
        return self.description

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
            "confidence": self.confidence,
            "layers": self.layers.to_dict() if self.layers else None,
            "status": self.status.value,
            "audio_asset": self.audio_asset.to_dict() if self.audio_asset else None,
            "provenance": self.provenance.value,
            "qc_feedback": self.qc_feedback,
            "regeneration_count": self.regeneration_count,
            "user_feedback": self.user_feedback,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SoundEvent:
        layers = data.get("layers")
        asset = data.get("audio_asset")
        return cls(
            id=str(data["id"]),
            timestamp=str(data["timestamp"]),
            description=str(data["description"]),
            confidence=float(data.get("confidence", 0.0)),
            layers=SoundLayers.from_dict(layers) if layers else None,
            status=EventStatus(data.get("status", EventStatus.DETECTED.value)),
            audio_asset=AudioAsset.from_dict(asset) if asset else None,
            provenance=Provenance(data.get("provenance", Provenance.PENDING.value)),
            qc_feedback=data.get("qc_feedback"),
            regeneration_count=int(data.get("regeneration_count", 0)),
            user_feedback=data.get("user_feedback"),
        )


@dataclass(frozen=True)
class DetectedEvent:
    """Raw detection output for one action, before it becomes a SoundEvent."""

    timestamp: str
    description: str
    confidence: float = 1.0


@dataclass(frozen=True)
class ReviewVerdict:
    """Reviewer verdict for one event.

    ``event_index`` is the position of the event in the batch that was
    submitted for review, not in the session.
    """

    event_index: int
    passed: bool
    coherence_score: float = 1.0
    feedback: str = ""
    suggested_fix: str | None = None


@dataclass(frozen=True)
class AssetCandidate:
    """A library match returned by an AssetStore search."""

    asset: AudioAsset
    score: float
    description: str | None = None


@dataclass(frozen=True)
class EngineResult:
    """Outcome of HybridAssetEngine.produce()."""

    asset: AudioAsset
    provenance: Provenance
    note: str = ""
    score: float | None = None
