"""Pipeline orchestrator: Detect -> Direct -> Produce -> Review -> Regenerate.

The orchestrator is an explicit state machine over SoundEvent.status:

    detected -> directing -> sourcing -> reviewing -> ready | rejected
    rejected -> sourcing -> reviewing   (at most max_attempts times per event)

Every run ends with all events ready. Events still rejected after the last
regeneration round are accepted as-is with their last feedback attached.
Detection and direction failures abort the run; every other collaborator
failure degrades inside the engine or is logged and tolerated.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import Sequence
from dataclasses import replace
from typing import TYPE_CHECKING

from foley.core.file_utils import compute_bytes_hash
from foley.domain.enums import EventStatus, PipelineStage, Provenance
from foley.domain.models import EngineResult, ReviewVerdict, SoundEvent
from foley.engine.hybrid import HybridAssetEngine
from foley.logging.context import pipeline_context
from foley.providers.interface import (
    DetectionProvider,
    DirectionProvider,
    ReviewProvider,
)
from foley.workflow.exceptions import (
    DetectionError,
    DirectionError,
    EventNotFoundError,
    PipelineError,
    RunCancelled,
)
from foley.workflow.progress import ProgressCallback, ProgressEvent, emit
from foley.workflow.session import Session

if TYPE_CHECKING:
    from foley.config.models import FoleyConfig
    from foley.providers.factory import ProviderSet

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_MAX_EVENTS = 20


def improved_query(spot: str, style: str) -> str:
    """Regeneration query used when the reviewer suggests no fix."""
    return f"{spot} - more {style.lower()}, clearer"


def manual_edit_query(spot: str, feedback: str) -> str:
    """Engine query for a human correction request."""
    return f"{spot}. User feedback: {feedback}"


class PipelineOrchestrator:
    """Drives a Session's events through the Foley pipeline."""

    def __init__(
        self,
        detector: DetectionProvider,
        director: DirectionProvider,
        reviewer: ReviewProvider,
        engine: HybridAssetEngine,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_events: int = DEFAULT_MAX_EVENTS,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            detector: Finds events in the video.
            director: Assigns three-layer intents.
            reviewer: Judges produced sounds.
            engine: Produces audio for a query.
            max_attempts: Automatic regeneration rounds (and per-event cap).
            max_events: Detection output beyond this count is dropped.
            progress_callback: Optional observer of ProgressEvents.
        """
        if max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._detector = detector
        self._director = director
        self._reviewer = reviewer
        self._engine = engine
        self._max_attempts = max_attempts
        self._max_events = max_events
        self._progress_callback = progress_callback
        self._cancel_requested = threading.Event()

    @classmethod
    def from_providers(
        cls,
        providers: ProviderSet,
        config: FoleyConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> PipelineOrchestrator:
        """Build an orchestrator and engine from a ProviderSet and config."""
        engine = HybridAssetEngine(
            providers.synthesizer,
            providers.embedder,
            providers.store,
            similarity_threshold=config.engine.similarity_threshold,
            search_limit=config.store.search_limit,
            duration_hint=config.synthesis.duration_seconds,
        )
        return cls(
            providers.detector,
            providers.director,
            providers.reviewer,
            engine,
            max_attempts=config.pipeline.max_regeneration_attempts,
            max_events=config.pipeline.max_events,
            progress_callback=progress_callback,
        )

    @property
    def engine(self) -> HybridAssetEngine:
        return self._engine

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def close(self) -> None:
        """Drain background cache writes."""
        self._engine.close()

    # ------------------------------------------------------------------
    # Progress, cancellation
    # ------------------------------------------------------------------

    def _emit(
        self,
        stage: PipelineStage,
        message: str,
        event_index: int | None = None,
        total: int | None = None,
        level: int = logging.INFO,
    ) -> None:
        with pipeline_context(stage.value, event_index):
            logger.log(level, "%s", message)
        emit(
            self._progress_callback,
            ProgressEvent(stage=stage, message=message, event_index=event_index, total=total),
        )

    def cancel(self) -> None:
        """Request cancellation; honored before the next stage or engine call."""
        self._cancel_requested.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def _checkpoint(self, session: Session) -> None:
        if not self._cancel_requested.is_set():
            return
        self._cancel_requested.clear()
        self.reset(session)
        self._emit(PipelineStage.SYSTEM, "Run cancelled; events reverted to detection baseline")
        raise RunCancelled("Run cancelled")

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def run_detection(
        self,
        session: Session,
        video_bytes: bytes | None,
        mime_type: str = "video/mp4",
        video_id: str | None = None,
    ) -> list[SoundEvent]:
        """Detect events, or reuse the session's cached detection output.

        Args:
            session: Session to populate.
            video_bytes: Raw video; may be None when the cache is valid.
            mime_type: MIME type of the video.
            video_id: Video identity; defaults to the SHA-256 of the bytes,
                or the session's current video when no bytes are given.

        Returns:
            The session's events, all in status detected.

        Raises:
            DetectionError: If detection fails or finds nothing. The session
                is left untouched.
        """
        if video_id is None:
            video_id = (
                compute_bytes_hash(video_bytes)
                if video_bytes is not None
                else session.video_id
            )

        cached = session.cache.get(video_id)
        if cached is not None:
            session.events = cached
            self._emit(
                PipelineStage.SPOTTER,
                f"Using cached analysis: {len(cached)} events, detection skipped",
            )
            return session.events

        if video_bytes is None:
            raise DetectionError("No video supplied and no cached detection for it")

        self._checkpoint(session)
        self._emit(PipelineStage.SPOTTER, "Analyzing video for physical actions...")
        try:
            with pipeline_context(PipelineStage.SPOTTER.value):
                detected = self._detector.detect(video_bytes, mime_type)
        except Exception as e:
            self._emit(
                PipelineStage.SPOTTER, f"Detection failed: {e}", level=logging.ERROR
            )
            raise DetectionError(f"Detection failed: {e}") from e

        if not detected:
            self._emit(
                PipelineStage.SPOTTER, "Detection found no events", level=logging.ERROR
            )
            raise DetectionError("Detection found no events")

        if len(detected) > self._max_events:
            self._emit(
                PipelineStage.SPOTTER,
                f"Detection returned {len(detected)} events; keeping the first "
                f"{self._max_events}, dropping {len(detected) - self._max_events}",
                level=logging.WARNING,
            )
            detected = detected[: self._max_events]

        stamp = int(time.time() * 1000)
        events = [
            SoundEvent(
                id=f"evt-{stamp}-{index}",
                timestamp=item.timestamp,
                description=item.description,
                confidence=min(1.0, max(0.0, item.confidence)),
            )
            for index, item in enumerate(detected)
        ]

        session.load_video(video_id)
        session.events = events
        session.cache.set(video_id, events)

        total = len(events)
        for index, event in enumerate(events):
            self._emit(
                PipelineStage.SPOTTER,
                f"[{event.timestamp}] {event.description} "
                f"(confidence {event.confidence:.0%})",
                index,
                total,
            )
        self._emit(PipelineStage.SPOTTER, f"Analysis complete: {total} sound events")
        return session.events

    def run_direction(self, session: Session, style: str) -> list[SoundEvent]:
        """Assign three-layer intents to every event.

        Raises:
            DirectionError: If the provider fails or returns a plan count that
                does not match the events. Events keep their prior state.
        """
        events = session.events
        if not events:
            raise DirectionError("No events to direct")

        self._checkpoint(session)
        prior = [(e.status, e.layers) for e in events]
        for event in events:
            event.status = EventStatus.DIRECTING

        total = len(events)
        self._emit(
            PipelineStage.DIRECTOR,
            f"Applying \"{style}\" direction to {total} events (spot, texture, vibe)",
        )
        try:
            with pipeline_context(PipelineStage.DIRECTOR.value):
                plans = self._director.direct(copy.deepcopy(events), style)
            if len(plans) != total:
                raise DirectionError(
                    f"Director returned {len(plans)} plans for {total} events"
                )
        except Exception as e:
            for event, (status, layers) in zip(events, prior):
                event.status = status
                event.layers = layers
            self._emit(
                PipelineStage.DIRECTOR, f"Direction failed: {e}", level=logging.ERROR
            )
            if isinstance(e, DirectionError):
                raise
            raise DirectionError(f"Direction failed: {e}") from e

        for index, (event, layers) in enumerate(zip(events, plans)):
            event.layers = layers
            event.status = EventStatus.SOURCING
            event.audio_asset = None
            event.provenance = Provenance.PENDING
            event.qc_feedback = None
            event.user_feedback = None
            self._emit(
                PipelineStage.DIRECTOR,
                f"[{event.timestamp}] spot: {layers.spot} | texture: {layers.texture} "
                f"| vibe: {layers.vibe}",
                index,
                total,
                level=logging.DEBUG,
            )

        session.style = style
        self._emit(PipelineStage.DIRECTOR, f"Creative direction complete: \"{style}\"")
        return events

    def _produce(
        self, session: Session, index: int, query: str, style: str
    ) -> EngineResult:
        """Run the engine for one event and attach the result."""
        event = session.events[index]
        total = len(session.events)
        event.status = EventStatus.SOURCING
        self._emit(PipelineStage.ENGINE, f"Producing \"{query}\"", index, total)

        with pipeline_context(PipelineStage.ENGINE.value, index):
            result = self._engine.produce(query, style)

        event.audio_asset = result.asset
        event.provenance = result.provenance
        event.status = EventStatus.REVIEWING
        self._emit(
            PipelineStage.ENGINE,
            f"{result.note} [{result.provenance.value}]",
            index,
            total,
            level=(
                logging.WARNING
                if result.provenance is Provenance.PENDING
                else logging.INFO
            ),
        )
        return result

    def run_production(self, session: Session, style: str) -> list[SoundEvent]:
        """Produce an asset for every event, sequentially in detection order.

        Raises:
            PipelineError: If an event has not been directed.
        """
        events = session.events
        for event in events:
            if event.layers is None:
                raise PipelineError(
                    f"Event {event.id} has no sound layers; run direction first"
                )

        self._emit(
            PipelineStage.ENGINE, f"Producing {len(events)} sounds (library first)"
        )
        for index, event in enumerate(events):
            self._checkpoint(session)
            event.regeneration_count = 0
            self._produce(session, index, event.spot_query, style)
        return events

    def run_review(
        self,
        session: Session,
        indices: Sequence[int] | None,
        style: str,
    ) -> list[ReviewVerdict]:
        """Review events awaiting a verdict.

        Args:
            session: Session whose events are reviewed.
            indices: Session positions to review; None means every event in
                status reviewing. Positions not in reviewing are skipped.
            style: Creative direction label.

        Returns:
            Verdicts with event_index mapped to session positions. Missing
            verdicts, and all verdicts when the reviewer fails, count as
            passes.
        """
        events = session.events
        if indices is None:
            indices = range(len(events))
        batch_indices = [i for i in indices if events[i].status is EventStatus.REVIEWING]
        if not batch_indices:
            return []

        self._checkpoint(session)
        total = len(events)
        self._emit(
            PipelineStage.QC,
            f"Reviewing {len(batch_indices)} sounds for coherence and \"{style}\" adherence",
        )

        batch = copy.deepcopy([events[i] for i in batch_indices])
        review_failed = False
        try:
            with pipeline_context(PipelineStage.QC.value):
                raw_verdicts = self._reviewer.review(batch, style)
        except Exception as e:
            review_failed = True
            raw_verdicts = []
            self._emit(
                PipelineStage.QC,
                f"Review unavailable ({e}); accepting {len(batch)} sounds as-is",
                level=logging.WARNING,
            )

        by_position: dict[int, ReviewVerdict] = {}
        for verdict in raw_verdicts:
            if 0 <= verdict.event_index < len(batch):
                by_position.setdefault(verdict.event_index, verdict)

        verdicts: list[ReviewVerdict] = []
        for position, index in enumerate(batch_indices):
            event = events[index]
            verdict = by_position.get(position)
            if verdict is None:
                if not review_failed:
                    self._emit(
                        PipelineStage.QC,
                        f"No verdict for [{event.timestamp}]; accepting",
                        index,
                        total,
                        level=logging.WARNING,
                    )
                verdict = ReviewVerdict(event_index=position, passed=True)
            verdict = replace(verdict, event_index=index)

            if verdict.passed:
                event.status = EventStatus.READY
                event.qc_feedback = None
                self._emit(
                    PipelineStage.QC,
                    f"[{event.timestamp}] passed (coherence {verdict.coherence_score:.2f})",
                    index,
                    total,
                    level=logging.DEBUG,
                )
            else:
                event.status = EventStatus.REJECTED
                event.qc_feedback = verdict.feedback or "Rejected without feedback"
                self._emit(
                    PipelineStage.QC,
                    f"[{event.timestamp}] rejected: {event.qc_feedback}",
                    index,
                    total,
                    level=logging.WARNING,
                )
            verdicts.append(verdict)

        rejected = sum(1 for v in verdicts if not v.passed)
        if rejected:
            self._emit(PipelineStage.QC, f"{rejected} sounds need improvement")
        else:
            self._emit(PipelineStage.QC, f"All {len(verdicts)} reviewed sounds pass")
        return verdicts

    def regeneration_round(
        self,
        session: Session,
        rejected_indices: Sequence[int],
        verdicts: Sequence[ReviewVerdict],
        style: str,
    ) -> list[int]:
        """Re-produce rejected events that are still under the attempt cap.

        Args:
            session: Session being processed.
            rejected_indices: Session positions of rejected events.
            verdicts: Latest verdicts (session positions), for suggested fixes.
            style: Creative direction label.

        Returns:
            Session positions that were regenerated and now await review.
        """
        fixes = {v.event_index: v.suggested_fix for v in verdicts if v.suggested_fix}
        total = len(session.events)
        regenerated: list[int] = []

        for index in rejected_indices:
            event = session.events[index]
            if event.status is not EventStatus.REJECTED:
                continue
            if event.regeneration_count >= self._max_attempts:
                self._emit(
                    PipelineStage.ENGINE,
                    f"Skipping [{event.timestamp}] (max attempts reached)",
                    index,
                    total,
                )
                continue

            self._checkpoint(session)
            query = fixes.get(index) or improved_query(event.spot_query, style)
            self._produce(session, index, query, style)
            event.regeneration_count += 1
            regenerated.append(index)

        return regenerated

    # ------------------------------------------------------------------
    # Whole runs and out-of-band operations
    # ------------------------------------------------------------------

    def run(
        self,
        session: Session,
        video_bytes: bytes | None = None,
        mime_type: str = "video/mp4",
        style: str | None = None,
        video_id: str | None = None,
    ) -> list[SoundEvent]:
        """Run the whole pipeline and return the session's (all ready) events.

        Detection is skipped when the session cache holds output for this
        video.

        Raises:
            DetectionError: If detection fails.
            DirectionError: If direction fails.
            RunCancelled: If cancel() was called; the session is reset.
        """
        style = style or session.style
        self._cancel_requested.clear()

        self.run_detection(session, video_bytes, mime_type, video_id)
        self.run_direction(session, style)
        self.run_production(session, style)

        verdicts = self.run_review(session, None, style)
        rejected = [v.event_index for v in verdicts if not v.passed]

        round_number = 0
        while rejected and round_number < self._max_attempts:
            round_number += 1
            self._emit(
                PipelineStage.QC,
                f"Round {round_number}: requesting regeneration of {len(rejected)} sounds",
            )
            regenerated = self.regeneration_round(session, rejected, verdicts, style)
            if not regenerated:
                break
            verdicts = self.run_review(session, regenerated, style)
            rejected = [v.event_index for v in verdicts if not v.passed]

        self._finalize(session)
        session.touch()
        return session.events

    def _finalize(self, session: Session) -> int:
        """Force every event to ready; return how many were force-accepted."""
        total = len(session.events)
        forced = 0
        for index, event in enumerate(session.events):
            if event.status is EventStatus.READY:
                continue
            if event.status is EventStatus.REJECTED:
                forced += 1
                self._emit(
                    PipelineStage.QC,
                    f"Accepting [{event.timestamp}] after "
                    f"{event.regeneration_count} attempt(s): {event.qc_feedback}",
                    index,
                    total,
                    level=logging.WARNING,
                )
            event.status = EventStatus.READY

        self._emit(PipelineStage.QC, f"Production complete: {total} sounds ready")
        return forced

    def manual_edit(
        self,
        session: Session,
        event_id: str,
        feedback: str,
        style: str | None = None,
    ) -> SoundEvent:
        """Regenerate one event from human feedback, bypassing review.

        Not subject to the automatic attempt cap.

        Raises:
            EventNotFoundError: If no event has ``event_id``.
            PipelineError: If the event has not been directed yet.
        """
        found = session.find_event(event_id)
        if found is None:
            raise EventNotFoundError(event_id)
        index, event = found
        if event.layers is None:
            raise PipelineError(
                f"Event {event_id} has no sound layers; run the pipeline first"
            )

        style = style or session.style
        self._emit(
            PipelineStage.ENGINE,
            f"Manual edit for [{event.timestamp}]: \"{feedback}\"",
            index,
            len(session.events),
        )
        self._produce(session, index, manual_edit_query(event.spot_query, feedback), style)
        event.user_feedback = feedback
        event.regeneration_count += 1
        event.status = EventStatus.READY
        session.touch()
        return event

    def reset(self, session: Session) -> list[SoundEvent]:
        """Revert events to the cached detection baseline, keeping the cache."""
        if session.reset():
            self._emit(
                PipelineStage.SYSTEM,
                f"Reset {len(session.events)} events for new direction; "
                "analysis retained",
            )
        else:
            self._emit(PipelineStage.SYSTEM, "No cached analysis; events cleared")
        return session.events
