"""Wiring of concrete collaborators from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from foley.config.models import FoleyConfig
from foley.providers.interface import (
    AssetStore,
    DetectionProvider,
    DirectionProvider,
    EmbeddingProvider,
    ReviewProvider,
    SynthesisProvider,
)

logger = logging.getLogger(__name__)


@dataclass
class ProviderSet:
    """The collaborators one pipeline run needs."""

    detector: DetectionProvider
    director: DirectionProvider
    reviewer: ReviewProvider
    synthesizer: SynthesisProvider
    embedder: EmbeddingProvider | None
    store: AssetStore | None
    _closeables: list[Any] = field(default_factory=list, repr=False)

    def close(self) -> None:
        """Close any clients or connections the factory opened."""
        for resource in self._closeables:
            try:
                resource.close()
            except Exception as e:  # nosec B110
                logger.debug("Error closing %s: %s", type(resource).__name__, e)
        self._closeables.clear()


def create_store(config: FoleyConfig) -> AssetStore | None:
    """Create the configured asset store, or None when caching is disabled.

    Raises:
        AssetStoreError: If the store cannot be opened.
    """
    backend = config.store.backend.lower()
    if backend == "none":
        return None
    if backend == "http":
        from foley.store.http import HttpAssetStore

        return HttpAssetStore(config.store)

    from foley.store.sqlite import SqliteAssetStore

    return SqliteAssetStore(
        config.library_path, text_match_score=config.store.text_match_score
    )


def create_providers(config: FoleyConfig, offline: bool = False) -> ProviderSet:
    """Build collaborators from configuration.

    Args:
        config: Effective configuration.
        offline: Use the deterministic stub providers instead of remote
            services. The asset store is still the configured one.

    Returns:
        ProviderSet ready for a PipelineOrchestrator.
    """
    store = create_store(config)
    closeables: list[Any] = [store] if store is not None else []

    if offline:
        from foley.providers.stub import (
            HashEmbedder,
            StubDetector,
            StubDirector,
            StubReviewer,
            StubSynthesizer,
        )

        logger.info("Using offline stub providers")
        return ProviderSet(
            detector=StubDetector(),
            director=StubDirector(),
            reviewer=StubReviewer(),
            synthesizer=StubSynthesizer(),
            embedder=HashEmbedder(),
            store=store,
            _closeables=closeables,
        )

    from foley.providers.elevenlabs import ElevenLabsSynthesizer
    from foley.providers.gemini import GeminiProvider

    if not config.gemini.configured:
        logger.warning("Gemini API key not set; detection and direction will fail")
    if not config.synthesis.api_key:
        logger.warning("ElevenLabs API key not set; uncached sounds will be placeholders")

    gemini = GeminiProvider(config.gemini, max_events=config.pipeline.max_events)
    synthesizer = ElevenLabsSynthesizer(config.synthesis)
    closeables.append(synthesizer)

    return ProviderSet(
        detector=gemini,
        director=gemini,
        reviewer=gemini,
        synthesizer=synthesizer,
        embedder=gemini,
        store=store,
        _closeables=closeables,
    )
