"""Pydantic models for collaborator responses.

Model output is validated against these before it reaches the domain
layer. Extra keys are ignored because language models routinely add them;
values are coerced where the meaning is unambiguous (numeric timestamps,
out-of-range confidence).
"""

from __future__ import annotations

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_validator,
)


class SpottedActionModel(BaseModel):
    """One action reported by the spotter."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    timestamp: str
    description: str = Field(min_length=1)
    confidence: float = 1.0

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: object) -> object:
        """Accept numeric seconds as well as text."""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("confidence", mode="after")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        """Clamp confidence into [0, 1]."""
        return min(1.0, max(0.0, v))


class SpotterResponse(RootModel[list[SpottedActionModel]]):
    """Top-level spotter response: a JSON array of actions."""


class LayerPlanModel(BaseModel):
    """Director output for one event. Missing layers fall back downstream."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    layer_1_spot: str | None = None
    layer_2_texture: str | None = None
    layer_3_vibe: str | None = None


class DirectorResponse(RootModel[list[LayerPlanModel]]):
    """Top-level director response: one plan per input event, in order."""


class QCVerdictModel(BaseModel):
    """Reviewer verdict for one submitted event."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    event_index: int = Field(
        validation_alias=AliasChoices("eventIndex", "event_index"), ge=0
    )
    passed: bool
    coherence_score: float = Field(
        default=1.0, validation_alias=AliasChoices("coherenceScore", "coherence_score")
    )
    feedback: str = ""
    suggested_fix: str | None = Field(
        default=None, validation_alias=AliasChoices("suggestedFix", "suggested_fix")
    )


class QCResponse(RootModel[list[QCVerdictModel]]):
    """Top-level reviewer response."""


class LibraryMatchModel(BaseModel):
    """One match returned by the asset library service."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    description: str = ""
    query: str | None = None
    audio_data: str = Field(validation_alias=AliasChoices("audioData", "audio_data"))
    score: float = 0.0


class LibrarySearchResponse(BaseModel):
    """Response of POST /api/sounds/search."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    documents: list[LibraryMatchModel] = Field(
        default_factory=list, validation_alias=AliasChoices("documents", "results")
    )


class LibraryStatsResponse(BaseModel):
    """Response of GET /api/sounds/stats."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    total_sounds: int = Field(
        default=0, validation_alias=AliasChoices("totalSounds", "total_sounds")
    )
