"""Deterministic offline providers for development and testing.

These implement every collaborator protocol without network access. The
same inputs always yield the same outputs, so an offline run is
repeatable end to end.
"""

from __future__ import annotations

import hashlib
import io
import math
import re
import struct
import wave
from collections.abc import Sequence

from foley.domain.models import DetectedEvent, ReviewVerdict, SoundEvent, SoundLayers
from foley.providers.interface import DetectionProviderError

# Actions the stub spotter picks from, keyed by video hash bytes
STUB_ACTIONS = (
    "Footsteps on wooden floor",
    "Door creaks open",
    "Glass set down on table",
    "Coat rustles",
    "Keys jingle",
    "Chair scrapes back",
    "Book slams shut",
    "Rain taps on window",
)

_WORD_RE = re.compile(r"[a-z0-9]+")


class StubDetector:
    """Derives a fixed set of actions from the video's content hash."""

    def __init__(self, event_count: int = 3, spacing_seconds: int = 4) -> None:
        self._event_count = event_count
        self._spacing = spacing_seconds

    def detect(self, video_bytes: bytes, mime_type: str) -> list[DetectedEvent]:
        """Return ``event_count`` actions spaced evenly along the timeline.

        Raises:
            DetectionProviderError: If the video is empty.
        """
        if not video_bytes:
            raise DetectionProviderError("Video is empty")

        digest = hashlib.sha256(video_bytes).digest()
        events = []
        for index in range(self._event_count):
            action = STUB_ACTIONS[digest[index] % len(STUB_ACTIONS)]
            seconds = (index + 1) * self._spacing
            events.append(
                DetectedEvent(
                    timestamp=f"{seconds // 60:02d}:{seconds % 60:02d}",
                    description=action,
                    confidence=round(0.7 + (digest[index + 8] % 30) / 100, 2),
                )
            )
        return events


class StubDirector:
    """Builds layers from the description and style label."""

    def direct(self, events: Sequence[SoundEvent], style: str) -> list[SoundLayers]:
        return [
            SoundLayers(
                spot=event.description,
                texture=f"{event.description} close-up detail",
                vibe=f"{style} ambience",
            )
            for event in events
        ]


class StubReviewer:
    """Passes every sound except placeholders."""

    def review(self, events: Sequence[SoundEvent], style: str) -> list[ReviewVerdict]:
        verdicts = []
        for index, event in enumerate(events):
            placeholder = event.audio_asset is None or event.audio_asset.is_placeholder
            verdicts.append(
                ReviewVerdict(
                    event_index=index,
                    passed=not placeholder,
                    coherence_score=0.4 if placeholder else 0.9,
                    feedback=(
                        "No audio was produced for this event"
                        if placeholder
                        else f"Fits the {style} direction"
                    ),
                )
            )
        return verdicts


class StubSynthesizer:
    """Renders a short sine tone whose pitch is derived from the text."""

    mime_type = "audio/wav"

    def __init__(self, sample_rate: int = 8000, duration_seconds: float = 0.5) -> None:
        self._sample_rate = sample_rate
        self._duration = duration_seconds

    def synthesize(self, text: str, duration_hint: float | None = None) -> bytes:
        duration = min(duration_hint or self._duration, self._duration)
        frequency = 220 + int(hashlib.sha256(text.encode()).hexdigest()[:4], 16) % 660
        frame_count = int(self._sample_rate * duration)

        frames = b"".join(
            struct.pack(
                "<h",
                int(
                    12000
                    * math.sin(2 * math.pi * frequency * i / self._sample_rate)
                ),
            )
            for i in range(frame_count)
        )

        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav:
            wav.setnchannels(1)
            wav.setsampwidth(2)
            wav.setframerate(self._sample_rate)
            wav.writeframes(frames)
        return buffer.getvalue()


class HashEmbedder:
    """Feature-hashed bag-of-words embedding.

    Each word of three or more characters is hashed to a signed bucket, so
    texts sharing vocabulary land close together under cosine similarity.
    """

    def __init__(self, dimensions: int = 64) -> None:
        self._dimensions = dimensions

    def embed(self, text: str) -> list[float] | None:
        vector = [0.0] * self._dimensions
        for word in _WORD_RE.findall(text.lower()):
            if len(word) < 3:
                continue
            digest = hashlib.sha256(word.encode()).digest()
            bucket = int.from_bytes(digest[:4], "big") % self._dimensions
            vector[bucket] += 1.0 if digest[4] & 1 else -1.0

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return None
        return [v / norm for v in vector]
