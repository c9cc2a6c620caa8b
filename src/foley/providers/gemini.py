"""Gemini-backed spotter, director, reviewer and embedder.

One GeminiProvider implements DetectionProvider, DirectionProvider,
ReviewProvider and EmbeddingProvider on top of the google-genai SDK.
Responses are requested as JSON, stripped of markdown fences and validated
with the pydantic models in foley.providers.schemas.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any

from google import genai
from google.genai import types

from foley.config.models import GeminiConfig
from foley.core.json_utils import parse_json_with_schema
from foley.domain.models import DetectedEvent, ReviewVerdict, SoundEvent, SoundLayers
from foley.providers.interface import (
    DetectionProviderError,
    DirectionProviderError,
    EmbeddingError,
    ProviderNotConfiguredError,
    ReviewProviderError,
)
from foley.providers.schemas import DirectorResponse, QCResponse, SpotterResponse

logger = logging.getLogger(__name__)

DEFAULT_TEXTURE = "Detailed Texture"

SPOTTER_PROMPT = """\
Analyze this video clip. You are a professional Foley Spotter.
Identify up to {max_events} distinct physical actions that would require sound effects.
For each action, provide a timestamp (format MM:SS), a concise description of the
action (e.g., "Boot hits glass", "Hand brushing fabric") and a confidence score 0-1.
Return the result as a JSON array of objects with keys
"timestamp", "description" and "confidence", in timeline order.
"""

DIRECTOR_PROMPT = """\
You are a Sound Director. Review the following detected actions:
{events}

The director wants the scene to have the following vibe: "{style}".

For every event, generate a plan with 3 distinct audio layers:
1. "layer_1_spot": the primary hard sound (e.g., footsteps, door slam).
2. "layer_2_texture": the subtle detail (e.g., gravel crunching, clothing rustle).
   Be specific with materials.
3. "layer_3_vibe": the atmospheric tone (e.g., low drone, high-pitched ringing),
   adjusted for the requested vibe ({style}).

Return a JSON array of objects, exactly one per event, in the same order.
"""

REVIEWER_PROMPT = """\
You are a Foley QC Reviewer. The scene's creative direction is "{style}".
Review the following produced sounds for coherence, continuity between
neighbouring events, and adherence to the direction:
{events}

For each event return an object with keys "eventIndex" (the number shown above),
"passed" (boolean), "coherenceScore" (0-1), "feedback" (one sentence) and,
when rejected, "suggestedFix" (an improved sound-effect description).
Return a JSON array.
"""


def _format_events(events: Sequence[SoundEvent], with_layers: bool = False) -> str:
    lines = []
    for index, event in enumerate(events):
        line = f"Event {index}: [{event.timestamp}] {event.description}"
        if with_layers and event.layers is not None:
            line += f" -> sound: {event.layers.spot}"
            if event.audio_asset is not None and event.audio_asset.is_placeholder:
                line += " (placeholder, no audio)"
        lines.append(line)
    return "\n".join(lines)


class GeminiProvider:
    """Spotter, director, reviewer and embedder backed by Gemini models."""

    def __init__(self, config: GeminiConfig, max_events: int = 20) -> None:
        """Initialize the provider.

        Args:
            config: Gemini settings (API key, models, timeout).
            max_events: Upper bound on actions requested from the spotter.
        """
        self._config = config
        self._max_events = max_events
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        """Get or create the SDK client."""
        if not self._config.configured:
            raise ProviderNotConfiguredError(
                "Gemini API key is not set (GOOGLE_API_KEY or GEMINI_API_KEY)"
            )
        if self._client is None:
            self._client = genai.Client(
                api_key=self._config.api_key,
                http_options=types.HttpOptions(
                    timeout=self._config.timeout_seconds * 1000
                ),
            )
        return self._client

    def _generate_json(self, contents: Any) -> str | None:
        response = self._get_client().models.generate_content(
            model=self._config.model,
            contents=contents,
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )
        return response.text

    def detect(self, video_bytes: bytes, mime_type: str) -> list[DetectedEvent]:
        """Detect timestamped actions in a video.

        Raises:
            DetectionProviderError: On SDK failure or unreadable output.
        """
        if not video_bytes:
            raise DetectionProviderError("Video is empty")

        prompt = SPOTTER_PROMPT.format(max_events=self._max_events)
        try:
            text = self._generate_json(
                [types.Part.from_bytes(data=video_bytes, mime_type=mime_type), prompt]
            )
        except ProviderNotConfiguredError as e:
            raise DetectionProviderError(str(e)) from e
        except Exception as e:
            raise DetectionProviderError(f"Spotter request failed: {e}") from e

        result = parse_json_with_schema(text, SpotterResponse, context="spotter")
        if not result.success:
            raise DetectionProviderError(result.error or "Unreadable spotter output")

        events = [
            DetectedEvent(
                timestamp=item.timestamp,
                description=item.description,
                confidence=item.confidence,
            )
            for item in result.value.root
        ]
        logger.debug("Spotter returned %d action(s)", len(events))
        return events

    def direct(self, events: Sequence[SoundEvent], style: str) -> list[SoundLayers]:
        """Produce a three-layer plan per event.

        Layers missing from an otherwise valid plan fall back to the event
        description, a generic texture and the style label.

        Raises:
            DirectionProviderError: On SDK failure or unreadable output.
        """
        prompt = DIRECTOR_PROMPT.format(events=_format_events(events), style=style)
        try:
            text = self._generate_json(prompt)
        except ProviderNotConfiguredError as e:
            raise DirectionProviderError(str(e)) from e
        except Exception as e:
            raise DirectionProviderError(f"Director request failed: {e}") from e

        result = parse_json_with_schema(text, DirectorResponse, context="director")
        if not result.success:
            raise DirectionProviderError(result.error or "Unreadable director output")

        plans = result.value.root
        if len(plans) != len(events):
            logger.warning(
                "Director returned %d plan(s) for %d event(s)", len(plans), len(events)
            )

        layers = []
        for index, plan in enumerate(plans):
            description = events[index].description if index < len(events) else ""
            layers.append(
                SoundLayers(
                    spot=plan.layer_1_spot or description,
                    texture=plan.layer_2_texture or DEFAULT_TEXTURE,
                    vibe=plan.layer_3_vibe or style,
                )
            )
        return layers

    def review(self, events: Sequence[SoundEvent], style: str) -> list[ReviewVerdict]:
        """Judge produced sounds against the style.

        Raises:
            ReviewProviderError: On SDK failure or unreadable output.
        """
        prompt = REVIEWER_PROMPT.format(
            events=_format_events(events, with_layers=True), style=style
        )
        try:
            text = self._generate_json(prompt)
        except ProviderNotConfiguredError as e:
            raise ReviewProviderError(str(e)) from e
        except Exception as e:
            raise ReviewProviderError(f"Reviewer request failed: {e}") from e

        result = parse_json_with_schema(text, QCResponse, context="reviewer")
        if not result.success:
            raise ReviewProviderError(result.error or "Unreadable reviewer output")

        verdicts = []
        for item in result.value.root:
            if item.event_index >= len(events):
                logger.warning(
                    "Reviewer returned verdict for unknown event %d, ignoring",
                    item.event_index,
                )
                continue
            verdicts.append(
                ReviewVerdict(
                    event_index=item.event_index,
                    passed=item.passed,
                    coherence_score=item.coherence_score,
                    feedback=item.feedback,
                    suggested_fix=item.suggested_fix or None,
                )
            )
        return verdicts

    def embed(self, text: str) -> list[float] | None:
        """Embed text with the configured embedding model.

        Raises:
            EmbeddingError: On SDK failure.
        """
        start = time.monotonic()
        try:
            result = self._get_client().models.embed_content(
                model=self._config.embedding_model,
                contents=text,
            )
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if not result.embeddings or not result.embeddings[0].values:
            return None
        logger.debug("Embedded query in %.2fs", time.monotonic() - start)
        return list(result.embeddings[0].values)
