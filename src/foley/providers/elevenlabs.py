"""ElevenLabs sound-generation client.

Implements SynthesisProvider against the /v1/sound-generation endpoint.
Every failure surfaces as SynthesisError so the asset engine can degrade
to a placeholder.
"""

from __future__ import annotations

import logging

import httpx

from foley.config.models import SynthesisConfig
from foley.providers.interface import SynthesisError

logger = logging.getLogger(__name__)


class SynthesisAuthError(SynthesisError):
    """Raised when the API key is missing or rejected."""

    pass


class SynthesisQuotaError(SynthesisError):
    """Raised when the account is out of credits or rate limited."""

    pass


class ElevenLabsSynthesizer:
    """HTTP client for ElevenLabs text-to-sound-effects."""

    mime_type = "audio/mpeg"

    def __init__(self, config: SynthesisConfig) -> None:
        """Initialize the client.

        Args:
            config: Synthesis settings (URL, API key, model, defaults).
        """
        self._base_url = config.url.rstrip("/")
        self._api_key = config.api_key
        self._model_id = config.model_id
        self._duration = config.duration_seconds
        self._prompt_influence = config.prompt_influence
        self._timeout = config.timeout_seconds
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers(),
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "xi-api-key": self._api_key or "",
            "Content-Type": "application/json",
            "Accept": self.mime_type,
        }

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def synthesize(self, text: str, duration_hint: float | None = None) -> bytes:
        """Generate a sound effect from a text description.

        Args:
            text: Sound description.
            duration_hint: Clip length in seconds; config default when None.

        Returns:
            Encoded audio bytes (MP3).

        Raises:
            SynthesisAuthError: If the API key is missing or invalid.
            SynthesisQuotaError: If the quota is exhausted (402/429).
            SynthesisError: On any other HTTP or transport failure.
        """
        if not self._api_key:
            raise SynthesisAuthError("ElevenLabs API key is not set")

        payload = {
            "text": text,
            "model_id": self._model_id,
            "duration_seconds": duration_hint or self._duration,
            "prompt_influence": self._prompt_influence,
        }

        client = self._get_client()
        try:
            response = client.post("/v1/sound-generation", json=payload)
            if response.status_code == 401:
                raise SynthesisAuthError("Invalid ElevenLabs API key")
            if response.status_code in (402, 429):
                raise SynthesisQuotaError(
                    f"ElevenLabs quota exceeded (HTTP {response.status_code})"
                )
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise SynthesisError(f"Cannot connect to ElevenLabs: {e}") from e
        except httpx.TimeoutException as e:
            raise SynthesisError(f"Synthesis timeout: {e}") from e
        except httpx.HTTPStatusError as e:
            raise SynthesisError(f"HTTP error: {e}") from e
        except httpx.HTTPError as e:
            raise SynthesisError(f"Synthesis request failed: {e}") from e

        audio = response.content
        if not audio:
            raise SynthesisError("ElevenLabs returned an empty body")

        logger.debug("Synthesized %d bytes for %r", len(audio), text[:60])
        return audio
