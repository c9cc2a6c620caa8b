"""Collaborator interfaces and their concrete adapters.

Adapters live in submodules so optional SDKs are imported only when used:

- interface: protocols and the ProviderError hierarchy
- gemini: spotter, director, reviewer and embedder (google-genai)
- elevenlabs: sound synthesis (httpx)
- stub: deterministic offline implementations
- factory: builds a ProviderSet from FoleyConfig
"""

from foley.providers.interface import (
    AssetStore,
    AssetStoreError,
    DetectionProvider,
    DetectionProviderError,
    DirectionProvider,
    DirectionProviderError,
    EmbeddingError,
    EmbeddingProvider,
    ProviderError,
    ProviderNotConfiguredError,
    ReviewProvider,
    ReviewProviderError,
    SynthesisError,
    SynthesisProvider,
    VectorIndexUnavailable,
)

__all__ = [
    "AssetStore",
    "AssetStoreError",
    "DetectionProvider",
    "DetectionProviderError",
    "DirectionProvider",
    "DirectionProviderError",
    "EmbeddingError",
    "EmbeddingProvider",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ReviewProvider",
    "ReviewProviderError",
    "SynthesisError",
    "SynthesisProvider",
    "VectorIndexUnavailable",
]
