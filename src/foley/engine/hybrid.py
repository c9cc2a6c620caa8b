"""Hybrid retrieve-or-synthesize asset engine.

HybridAssetEngine.produce() turns a text query into an audio asset:

1. Compose "<query> <style> sound effect".
2. Embed it. No embedding means a cache miss.
3. Ask the asset store for the nearest neighbour; fall back to keyword
   search when the vector index is unavailable or finds nothing. Reuse the
   top candidate only if its score exceeds the similarity threshold.
4. Otherwise synthesize, then hand the new asset to the background cache
   writer.
5. If synthesis fails too, return the placeholder asset.

produce() never raises for collaborator failures.
"""

from __future__ import annotations

import logging

from foley.core.file_utils import compute_bytes_hash
from foley.core.text_utils import search_terms
from foley.domain.enums import Provenance
from foley.domain.models import AssetCandidate, AudioAsset, EngineResult
from foley.engine.cache_writer import CacheWriter
from foley.providers.interface import (
    AssetStore,
    EmbeddingProvider,
    SynthesisProvider,
    VectorIndexUnavailable,
)

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.85


def compose_query(query: str, style_context: str) -> str:
    """Build the search and synthesis string for a query and style."""
    parts = [query.strip(), style_context.strip(), "sound effect"]
    return " ".join(p for p in parts if p)


class HybridAssetEngine:
    """Produces audio for a query, preferring cached near-duplicates."""

    def __init__(
        self,
        synthesizer: SynthesisProvider,
        embedder: EmbeddingProvider | None = None,
        store: AssetStore | None = None,
        *,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        search_limit: int = 1,
        duration_hint: float | None = None,
        cache_writer: CacheWriter | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            synthesizer: Generates audio on a cache miss.
            embedder: Produces query vectors; None disables cache lookups.
            store: Asset library; None disables caching entirely.
            similarity_threshold: A candidate is reused only when its score
                is strictly greater than this value.
            search_limit: Candidates requested per store search.
            duration_hint: Clip length passed to the synthesizer.
            cache_writer: Background writer; created from ``store`` if None.
        """
        self._synthesizer = synthesizer
        self._embedder = embedder
        self._store = store
        self._threshold = similarity_threshold
        self._search_limit = search_limit
        self._duration_hint = duration_hint
        self._owns_writer = cache_writer is None and store is not None
        self._cache_writer = (
            cache_writer
            if cache_writer is not None
            else (CacheWriter(store) if store is not None else None)
        )

    @property
    def similarity_threshold(self) -> float:
        return self._threshold

    @property
    def cache_writer(self) -> CacheWriter | None:
        return self._cache_writer

    def produce(self, query: str, style_context: str) -> EngineResult:
        """Return an asset for ``query`` in the given style.

        Args:
            query: Sound description (typically the event's spot layer).
            style_context: Creative direction label.

        Returns:
            EngineResult with the asset, its provenance and a note for logs.
        """
        composed = compose_query(query, style_context)

        vector = self._embed(composed)
        if vector is not None and self._store is not None:
            candidate = self._lookup(self._store, composed, vector)
            if candidate is not None:
                if candidate.score > self._threshold:
                    logger.info(
                        "Cache hit for %r (score %.2f > %.2f)",
                        query,
                        candidate.score,
                        self._threshold,
                    )
                    return EngineResult(
                        asset=candidate.asset,
                        provenance=Provenance.CACHE_HIT,
                        note=(
                            f"Library match \"{candidate.description or query}\" "
                            f"(score {candidate.score:.2f})"
                        ),
                        score=candidate.score,
                    )
                logger.info(
                    "Best library match for %r scored %.2f, below %.2f",
                    query,
                    candidate.score,
                    self._threshold,
                )

        return self._synthesize(query, composed, vector)

    def _embed(self, text: str) -> list[float] | None:
        if self._embedder is None:
            return None
        try:
            vector = self._embedder.embed(text)
            values = [float(v) for v in vector] if vector is not None else []
        except Exception as e:
            logger.warning("Embedding failed, treating as cache miss: %s", e)
            return None
        if not values:
            logger.debug("No embedding returned for %r", text)
            return None
        return values

    def _lookup(
        self, store: AssetStore, composed: str, vector: list[float]
    ) -> AssetCandidate | None:
        """Vector search with keyword fallback. Store errors are a miss."""
        candidates: list[AssetCandidate] = []
        try:
            candidates = store.search(vector, self._search_limit)
        except VectorIndexUnavailable as e:
            logger.info("Vector index unavailable, using keyword fallback: %s", e)
        except Exception as e:
            logger.warning("Asset store unreachable, skipping cache: %s", e)
            return None

        if not candidates:
            try:
                candidates = store.search_text(
                    search_terms([composed]), self._search_limit
                )
            except Exception as e:
                logger.warning("Keyword fallback failed: %s", e)
                return None

        if not candidates:
            return None
        return max(candidates, key=lambda c: c.score)

    def _synthesize(
        self, query: str, composed: str, vector: list[float] | None
    ) -> EngineResult:
        try:
            audio = self._synthesizer.synthesize(composed, self._duration_hint)
        except Exception as e:
            logger.warning("Synthesis failed for %r, using placeholder: %s", query, e)
            return EngineResult(
                asset=AudioAsset.placeholder(description=query),
                provenance=Provenance.PENDING,
                note=f"Synthesis unavailable ({e}); placeholder attached",
            )

        if not audio:
            logger.warning("Synthesis returned no audio for %r", query)
            return EngineResult(
                asset=AudioAsset.placeholder(description=query),
                provenance=Provenance.PENDING,
                note="Synthesis returned no audio; placeholder attached",
            )

        asset = AudioAsset(
            uri=f"synth:{compute_bytes_hash(audio)[:16]}",
            mime_type=getattr(self._synthesizer, "mime_type", "audio/mpeg"),
            data=audio,
            description=query,
        )

        if vector is not None and self._cache_writer is not None:
            self._cache_writer.submit(query, composed, asset, vector)
        elif self._cache_writer is not None:
            logger.debug("No embedding for %r; not caching", query)

        return EngineResult(
            asset=asset,
            provenance=Provenance.SYNTHESIZED,
            note=f"Synthesized \"{query}\"",
        )

    def close(self, timeout: float | None = 30.0) -> None:
        """Drain pending cache writes and stop the writer this engine created."""
        if self._cache_writer is None:
            return
        self._cache_writer.flush(timeout)
        if self._owns_writer:
            self._cache_writer.close()
