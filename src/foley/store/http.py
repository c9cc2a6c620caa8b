"""HTTP client for the shared asset library service.

The service exposes:
    POST /api/sounds/search  {embedding?, query?, limit} -> {documents: [...]}
    POST /api/sounds/cache   {description, query, audioData, embedding}
    GET  /api/sounds/stats   -> {totalSounds}

Audio travels as base64 data URLs.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from foley.config.models import AssetStoreConfig
from foley.core.file_utils import compute_bytes_hash
from foley.core.text_utils import search_terms
from foley.domain.models import AssetCandidate, AudioAsset
from foley.providers.interface import AssetStoreError, VectorIndexUnavailable
from foley.providers.schemas import (
    LibraryMatchModel,
    LibrarySearchResponse,
    LibraryStatsResponse,
)

logger = logging.getLogger(__name__)


def encode_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Decode a base64 data URL into (mime_type, bytes).

    Raises:
        ValueError: If the URL is not a base64 data URL.
    """
    if not url.startswith("data:") or "," not in url:
        raise ValueError("Not a data URL")
    header, _, payload = url.partition(",")
    meta = header[len("data:") :]
    if not meta.endswith(";base64"):
        raise ValueError("Data URL is not base64-encoded")
    mime_type = meta[: -len(";base64")] or "application/octet-stream"
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


class HttpAssetStore:
    """AssetStore implementation over the library service's REST API."""

    def __init__(self, config: AssetStoreConfig) -> None:
        """Initialize the client.

        Args:
            config: Store settings; ``url`` must be set.
        """
        if not config.url:
            raise AssetStoreError("Asset library URL is not configured")
        self._base_url = config.url.rstrip("/")
        self._timeout = config.timeout_seconds
        self._text_match_score = config.text_match_score
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(base_url=self._base_url, timeout=self._timeout)
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _post_search(self, body: dict[str, Any]) -> list[LibraryMatchModel]:
        client = self._get_client()
        try:
            response = client.post("/api/sounds/search", json=body)
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise AssetStoreError(f"Cannot connect to asset library: {e}") from e
        except httpx.TimeoutException as e:
            raise AssetStoreError(f"Asset library timeout: {e}") from e
        except httpx.HTTPError as e:
            raise AssetStoreError(f"Asset library search failed: {e}") from e

        try:
            parsed = LibrarySearchResponse.model_validate(response.json())
        except ValueError as e:
            raise AssetStoreError(f"Unreadable search response: {e}") from e
        return parsed.documents

    def _to_candidate(
        self, match: LibraryMatchModel, score: float
    ) -> AssetCandidate | None:
        try:
            mime_type, data = decode_data_url(match.audio_data)
        except ValueError as e:
            logger.warning("Skipping library match %r: %s", match.description, e)
            return None
        key = match.id or compute_bytes_hash(data)[:16]
        return AssetCandidate(
            asset=AudioAsset(
                uri=f"library:{key}",
                mime_type=mime_type,
                data=data,
                description=match.description,
            ),
            score=score,
            description=match.description,
        )

    def search(self, vector: Sequence[float], limit: int = 1) -> list[AssetCandidate]:
        """Vector search via the library service.

        Raises:
            VectorIndexUnavailable: If ``vector`` is empty.
            AssetStoreError: If the service cannot be reached.
        """
        if not vector:
            raise VectorIndexUnavailable("Empty query vector")
        matches = self._post_search({"embedding": list(vector), "limit": limit})
        candidates = (self._to_candidate(m, m.score) for m in matches)
        return [c for c in candidates if c is not None]

    def search_text(
        self, keywords: Sequence[str], limit: int = 1
    ) -> list[AssetCandidate]:
        """Keyword search; every match carries the fixed text-match score."""
        terms = search_terms(keywords)
        if not terms:
            return []
        matches = self._post_search({"query": " ".join(terms), "limit": limit})
        candidates = (self._to_candidate(m, self._text_match_score) for m in matches)
        return [c for c in candidates if c is not None]

    def insert(
        self,
        description: str,
        query: str,
        asset: AudioAsset,
        vector: Sequence[float] | None,
    ) -> bool:
        """Upload an asset. The service requires audio and an embedding."""
        if not asset.data or not vector:
            logger.warning(
                "Not caching %r: library requires audio and an embedding", description
            )
            return False

        body = {
            "description": description,
            "query": query,
            "audioData": encode_data_url(asset.data, asset.mime_type),
            "embedding": list(vector),
        }
        try:
            response = self._get_client().post("/api/sounds/cache", json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to cache asset %r: %s", description, e)
            return False
        return True

    def count(self) -> int:
        """Return the number of assets in the library.

        Raises:
            AssetStoreError: If the service cannot be reached.
        """
        try:
            response = self._get_client().get("/api/sounds/stats")
            response.raise_for_status()
            return LibraryStatsResponse.model_validate(response.json()).total_sounds
        except httpx.HTTPError as e:
            raise AssetStoreError(f"Cannot read library stats: {e}") from e
        except ValueError as e:
            raise AssetStoreError(f"Unreadable stats response: {e}") from e
