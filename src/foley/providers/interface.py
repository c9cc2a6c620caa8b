"""Interface definitions for pipeline collaborators.

The orchestrator and engine depend only on these protocols. Every concrete
adapter (Gemini, ElevenLabs, asset stores, offline stubs) raises the errors
defined here so callers never see transport-specific exceptions.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from foley.domain.models import (
    AssetCandidate,
    AudioAsset,
    DetectedEvent,
    ReviewVerdict,
    SoundEvent,
    SoundLayers,
)


class ProviderError(Exception):
    """Base exception for collaborator failures."""

    pass


class ProviderNotConfiguredError(ProviderError):
    """Raised when a provider is used without required credentials."""

    pass


class DetectionProviderError(ProviderError):
    """Raised when detection fails or returns unreadable output."""

    pass


class DirectionProviderError(ProviderError):
    """Raised when direction fails or returns unreadable output."""

    pass


class ReviewProviderError(ProviderError):
    """Raised when the quality review call fails."""

    pass


class SynthesisError(ProviderError):
    """Raised on quota, auth, format or transport failures during synthesis."""

    pass


class EmbeddingError(ProviderError):
    """Raised when an embedding cannot be produced."""

    pass


class AssetStoreError(ProviderError):
    """Raised when the asset store cannot be reached or queried."""

    pass


class VectorIndexUnavailable(AssetStoreError):
    """Raised when the store is reachable but cannot run vector search.

    Callers fall back to AssetStore.search_text().
    """

    pass


@runtime_checkable
class DetectionProvider(Protocol):
    """Finds timestamped physical actions in a video."""

    def detect(self, video_bytes: bytes, mime_type: str) -> list[DetectedEvent]:
        """Detect candidate sound events.

        Args:
            video_bytes: Raw video file contents.
            mime_type: MIME type of the video (e.g., "video/mp4").

        Returns:
            Events in timeline order.

        Raises:
            DetectionProviderError: If the input is unreadable or the call fails.
        """
        ...


@runtime_checkable
class DirectionProvider(Protocol):
    """Expands event descriptions into three-layer audio intents."""

    def direct(self, events: Sequence[SoundEvent], style: str) -> list[SoundLayers]:
        """Return one SoundLayers per input event, aligned by index.

        Raises:
            DirectionProviderError: If the call fails.
        """
        ...


@runtime_checkable
class ReviewProvider(Protocol):
    """Judges produced sounds for coherence with the style."""

    def review(self, events: Sequence[SoundEvent], style: str) -> list[ReviewVerdict]:
        """Return verdicts whose event_index refers to positions in ``events``.

        Raises:
            ReviewProviderError: If the call fails.
        """
        ...


@runtime_checkable
class SynthesisProvider(Protocol):
    """Generates a novel audio clip from text."""

    @property
    def mime_type(self) -> str:
        """MIME type of the audio returned by synthesize()."""
        ...

    def synthesize(self, text: str, duration_hint: float | None = None) -> bytes:
        """Generate audio.

        Raises:
            SynthesisError: On provider, credential or transport failure.
        """
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into a fixed-length similarity vector."""

    def embed(self, text: str) -> list[float] | None:
        """Return the embedding, or None if none could be produced.

        Implementations may also raise EmbeddingError.
        """
        ...


@runtime_checkable
class AssetStore(Protocol):
    """Library of previously produced assets backing the semantic cache."""

    def search(self, vector: Sequence[float], limit: int = 1) -> list[AssetCandidate]:
        """Return candidates ranked by similarity to ``vector``.

        Raises:
            VectorIndexUnavailable: If vector search is not possible.
            AssetStoreError: If the store cannot be reached.
        """
        ...

    def search_text(
        self, keywords: Sequence[str], limit: int = 1
    ) -> list[AssetCandidate]:
        """Return keyword matches, each with the store's fixed synthetic score.

        Raises:
            AssetStoreError: If the store cannot be reached.
        """
        ...

    def insert(
        self,
        description: str,
        query: str,
        asset: AudioAsset,
        vector: Sequence[float] | None,
    ) -> bool:
        """Store a new asset. Best-effort: returns False on failure."""
        ...
