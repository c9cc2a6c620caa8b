"""Session state: one video, one style label, the detection cache.

A Session is passed explicitly to every orchestrator call; nothing in the
pipeline keeps module-level state. Sessions persist as JSON so a later
process can re-direct the same video without re-running detection.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from foley.config.models import DEFAULT_STYLE
from foley.domain.models import SoundEvent
from foley.workflow.exceptions import SessionFileError

logger = logging.getLogger(__name__)

SESSION_FORMAT_VERSION = 1


def baseline_copy(event: SoundEvent) -> SoundEvent:
    """Return the event as detection produced it: identity and detection fields only."""
    return SoundEvent(
        id=event.id,
        timestamp=event.timestamp,
        description=event.description,
        confidence=event.confidence,
    )


class SessionCache:
    """Single-entry cache of detection output keyed by video identity.

    There is at most one entry; setting a new key replaces it. Stored and
    returned events are copies, so callers cannot mutate the baseline.
    """

    def __init__(self) -> None:
        self._key: str | None = None
        self._events: list[SoundEvent] = []

    @property
    def key(self) -> str | None:
        return self._key

    def is_valid_for(self, key: str | None) -> bool:
        """Return True if the cache holds detection output for ``key``."""
        return key is not None and self._key == key

    def get(self, key: str | None) -> list[SoundEvent] | None:
        """Return fresh baseline copies for ``key``, or None on a miss."""
        if not self.is_valid_for(key):
            return None
        return [baseline_copy(e) for e in self._events]

    def set(self, key: str, events: list[SoundEvent]) -> None:
        """Cache detection output for ``key``, replacing any previous entry."""
        self._key = key
        self._events = [baseline_copy(e) for e in events]

    def invalidate(self) -> None:
        """Drop the cached entry."""
        if self._key is not None:
            logger.debug("Invalidating detection cache for %s", self._key[:12])
        self._key = None
        self._events = []

    def __len__(self) -> int:
        return len(self._events)

    def to_dict(self) -> dict[str, Any]:
        return {"key": self._key, "events": [e.to_dict() for e in self._events]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SessionCache:
        cache = cls()
        if data and data.get("key"):
            cache.set(
                str(data["key"]),
                [SoundEvent.from_dict(e) for e in data.get("events", [])],
            )
        return cache


@dataclass
class Session:
    """One video plus one active style label, with its events and cache."""

    video_id: str | None = None
    video_name: str | None = None
    style: str = DEFAULT_STYLE
    events: list[SoundEvent] = field(default_factory=list)
    cache: SessionCache = field(default_factory=SessionCache)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def load_video(self, video_id: str, video_name: str | None = None) -> bool:
        """Point the session at a video.

        A different video invalidates the detection cache and clears the
        events; the same video keeps both.

        Returns:
            True if the video changed.
        """
        if video_name is not None:
            self.video_name = video_name
        if video_id == self.video_id:
            return False
        logger.info("New video %s; detection cache invalidated", video_id[:12])
        self.video_id = video_id
        self.cache.invalidate()
        self.events = []
        return True

    def find_event(self, event_id: str) -> tuple[int, SoundEvent] | None:
        """Return (index, event) for ``event_id``, or None."""
        for index, event in enumerate(self.events):
            if event.id == event_id:
                return index, event
        return None

    def reset(self) -> bool:
        """Revert events to the cached detection baseline, keeping the cache.

        Without a cache entry for the current video the events are cleared.

        Returns:
            True if events were restored from the cache.
        """
        cached = self.cache.get(self.video_id)
        self.events = cached if cached is not None else []
        self.touch()
        return cached is not None

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SESSION_FORMAT_VERSION,
            "video_id": self.video_id,
            "video_name": self.video_name,
            "style": self.style,
            "updated_at": self.updated_at.isoformat(),
            "events": [e.to_dict() for e in self.events],
            "cache": self.cache.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        version = data.get("version", SESSION_FORMAT_VERSION)
        if version != SESSION_FORMAT_VERSION:
            raise SessionFileError(f"Unsupported session format version {version}")
        updated_at = data.get("updated_at")
        return cls(
            video_id=data.get("video_id"),
            video_name=data.get("video_name"),
            style=data.get("style") or DEFAULT_STYLE,
            events=[SoundEvent.from_dict(e) for e in data.get("events", [])],
            cache=SessionCache.from_dict(data.get("cache")),
            updated_at=(
                datetime.fromisoformat(updated_at)
                if updated_at
                else datetime.now(timezone.utc)
            ),
        )

    def save(self, path: Path) -> None:
        """Write the session as JSON (atomically, via a temp file).

        Raises:
            SessionFileError: If the file cannot be written.
        """
        path = Path(path)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise SessionFileError(f"Cannot write session {path}: {e}") from e
        logger.debug("Saved session to %s", path)

    @classmethod
    def load(cls, path: Path) -> Session:
        """Read a session written by save().

        Raises:
            SessionFileError: If the file is missing or malformed.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise SessionFileError(f"Cannot read session {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SessionFileError(f"Session {path} is not valid JSON: {e}") from e

        try:
            return cls.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise SessionFileError(f"Session {path} is malformed: {e}") from e
