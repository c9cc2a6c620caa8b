"""Tests for the pipeline orchestrator state machine."""

from __future__ import annotations

import logging
import re

import pytest
from fakes import (
    FakeDetector,
    FakeDirector,
    FakeEmbedder,
    FakeReviewer,
    FakeStore,
    FakeSynthesizer,
    library_candidate,
)

from foley.domain.enums import EventStatus, PipelineStage, Provenance
from foley.domain.models import DetectedEvent
from foley.providers.interface import (
    DetectionProviderError,
    DirectionProviderError,
    EmbeddingError,
    ReviewProviderError,
)
from foley.workflow import (
    DetectionError,
    DirectionError,
    EventNotFoundError,
    PipelineError,
    RunCancelled,
    Session,
    improved_query,
)

STYLE = "Cinematic Realism"


class TestFullRun:
    """End-to-end runs over fake collaborators."""

    def test_cache_hit_and_synthesis_mix(self, make_orchestrator, session, video_bytes):
        """Event 1 reuses a library sound; the others are synthesized."""
        store = FakeStore(
            results=lambda v: [library_candidate(0.9)] if v[0] == 1.0 else []
        )
        orchestrator, parts = make_orchestrator(
            embedder=FakeEmbedder(vectors={"door": [1.0, 0.0]}, default=[0.0, 1.0]),
            store=store,
        )

        events = orchestrator.run(session, video_bytes, style=STYLE)

        assert [e.description for e in events] == [
            "Door slams",
            "Footsteps on gravel",
            "Glass shatters",
        ]
        assert [e.provenance for e in events] == [
            Provenance.CACHE_HIT,
            Provenance.SYNTHESIZED,
            Provenance.SYNTHESIZED,
        ]
        assert all(e.status is EventStatus.READY for e in events)
        assert all(e.regeneration_count == 0 for e in events)
        assert len(parts["synthesizer"].calls) == 2
        assert len(parts["reviewer"].calls) == 1

    def test_persistent_rejection_is_force_accepted(
        self, make_orchestrator, session, video_bytes
    ):
        """An event rejected every time ends ready with the last feedback."""
        reviewer = FakeReviewer(reject={"Footsteps on gravel"})
        orchestrator, parts = make_orchestrator(reviewer=reviewer, max_attempts=2)

        events = orchestrator.run(session, video_bytes, style=STYLE)

        footsteps = events[1]
        assert footsteps.status is EventStatus.READY
        assert footsteps.regeneration_count == 2
        assert footsteps.qc_feedback == "Too thin (review 3)"
        assert footsteps.audio_asset is not None
        # Initial review plus one re-review per round, each over the one event
        assert len(reviewer.calls) == 3
        assert [len(batch) for batch in reviewer.calls[1:]] == [1, 1]
        assert all(e.status is EventStatus.READY for e in events)
        assert events[0].qc_feedback is None

    def test_regeneration_uses_improved_query(
        self, make_orchestrator, session, video_bytes
    ):
        """Without a suggested fix the query asks for a clearer version."""
        orchestrator, parts = make_orchestrator(
            reviewer=FakeReviewer(reject={"Glass shatters"}), max_attempts=1
        )

        orchestrator.run(session, video_bytes, style=STYLE)

        expected = improved_query("Glass shatters", STYLE)
        assert expected == "Glass shatters - more cinematic realism, clearer"
        assert parts["synthesizer"].calls[-1].startswith(expected)

    def test_regeneration_uses_suggested_fix(
        self, make_orchestrator, session, video_bytes
    ):
        """A reviewer's suggested fix replaces the query."""
        orchestrator, parts = make_orchestrator(
            reviewer=FakeReviewer(
                reject={"Glass shatters"}, suggested_fix="Window pane shattering"
            ),
            max_attempts=1,
        )

        orchestrator.run(session, video_bytes, style=STYLE)

        assert parts["synthesizer"].calls[-1].startswith("Window pane shattering")

    def test_zero_attempts_never_regenerates(
        self, make_orchestrator, session, video_bytes
    ):
        """With max_attempts=0 rejections are accepted immediately."""
        orchestrator, parts = make_orchestrator(
            reviewer=FakeReviewer(reject={"Door slams"}), max_attempts=0
        )

        events = orchestrator.run(session, video_bytes, style=STYLE)

        assert events[0].regeneration_count == 0
        assert events[0].status is EventStatus.READY
        assert events[0].qc_feedback == "Too thin (review 1)"
        assert len(parts["synthesizer"].calls) == 3

    def test_embedding_failure_degrades_to_synthesis(
        self, make_orchestrator, session, video_bytes
    ):
        """A failing embedder still yields synthesized sounds for every event."""
        store = FakeStore(results=[library_candidate(0.99)])
        orchestrator, parts = make_orchestrator(
            embedder=FakeEmbedder(error=EmbeddingError("quota exceeded")),
            store=store,
        )

        events = orchestrator.run(session, video_bytes, style=STYLE)

        assert all(e.provenance is Provenance.SYNTHESIZED for e in events)
        assert all(e.status is EventStatus.READY for e in events)
        assert store.search_calls == []

    def test_event_ids_and_order(self, make_orchestrator, session, video_bytes):
        """Ids follow evt-<ms>-<index> and detection order is preserved."""
        orchestrator, _ = make_orchestrator()

        events = orchestrator.run(session, video_bytes, style=STYLE)

        for index, event in enumerate(events):
            assert re.fullmatch(rf"evt-\d+-{index}", event.id)
        assert [e.timestamp for e in events] == ["00:01", "00:03", "00:06"]

    def test_style_is_recorded_on_session(self, make_orchestrator, session, video_bytes):
        """The applied style label becomes the session's style."""
        orchestrator, parts = make_orchestrator()

        orchestrator.run(session, video_bytes, style="Retro 8-bit")

        assert session.style == "Retro 8-bit"
        assert parts["director"].calls[0][1] == "Retro 8-bit"
        assert events_vibes(session) == {"Retro 8-bit room tone"}


def events_vibes(session: Session) -> set[str]:
    return {e.layers.vibe for e in session.events if e.layers}


class TestDetectionCache:
    """Tests for reuse of detection output."""

    def test_second_run_skips_detection(self, make_orchestrator, session, video_bytes):
        """Re-running on the same video does not call the detector again."""
        orchestrator, parts = make_orchestrator()

        first = [e.to_dict() for e in orchestrator.run(session, video_bytes, style=STYLE)]
        second = [e.to_dict() for e in orchestrator.run(session, video_bytes, style=STYLE)]

        assert len(parts["detector"].calls) == 1
        assert first == second

    def test_restyle_keeps_ids(self, make_orchestrator, session, video_bytes):
        """A new style re-directs the cached events under the same ids."""
        orchestrator, parts = make_orchestrator()

        first_ids = [e.id for e in orchestrator.run(session, video_bytes, style=STYLE)]
        events = orchestrator.run(session, video_bytes, style="Film Noir")

        assert [e.id for e in events] == first_ids
        assert events_vibes(session) == {"Film Noir room tone"}
        assert len(parts["detector"].calls) == 1

    def test_new_video_invalidates_cache(self, make_orchestrator, session, video_bytes):
        """Different bytes mean a new detection."""
        orchestrator, parts = make_orchestrator()

        orchestrator.run(session, video_bytes, style=STYLE)
        orchestrator.run(session, video_bytes + b"-other", style=STYLE)

        assert len(parts["detector"].calls) == 2

    def test_run_without_bytes_needs_cache(self, make_orchestrator, session):
        """No video and no cache is a detection failure."""
        orchestrator, _ = make_orchestrator()

        with pytest.raises(DetectionError):
            orchestrator.run(session, None, style=STYLE)


class TestDetectionFailures:
    """Tests for fatal detection outcomes."""

    def test_provider_error_leaves_session_untouched(
        self, make_orchestrator, session, video_bytes
    ):
        """A failed detection keeps the previous video's events and cache."""
        orchestrator, parts = make_orchestrator()
        orchestrator.run(session, video_bytes, style=STYLE)
        before = [e.to_dict() for e in session.events]
        video_id = session.video_id

        parts["detector"].error = DetectionProviderError("model overloaded")
        with pytest.raises(DetectionError, match="model overloaded"):
            orchestrator.run(session, b"another video", style=STYLE)

        assert session.video_id == video_id
        assert [e.to_dict() for e in session.events] == before
        assert session.cache.is_valid_for(video_id)

    def test_no_events_is_an_error(self, make_orchestrator, session, video_bytes):
        """An empty detection result aborts the run."""
        orchestrator, parts = make_orchestrator(detector=FakeDetector(detections=[]))

        with pytest.raises(DetectionError, match="no events"):
            orchestrator.run(session, video_bytes, style=STYLE)

        assert parts["director"].calls == []
        assert session.events == []

    def test_detection_is_truncated(self, make_orchestrator, session, video_bytes, caplog):
        """Only the first max_events detections are kept."""
        detections = [
            DetectedEvent(timestamp=f"00:0{i}", description=f"Tap {i}") for i in range(5)
        ]
        orchestrator, _ = make_orchestrator(
            detector=FakeDetector(detections=detections), max_events=2
        )

        with caplog.at_level(logging.WARNING):
            events = orchestrator.run_detection(session, video_bytes)

        assert [e.description for e in events] == ["Tap 0", "Tap 1"]
        assert "dropping 3" in caplog.text

    def test_confidence_is_clamped(self, make_orchestrator, session, video_bytes):
        """Out-of-range confidences are clamped into [0, 1]."""
        detections = [DetectedEvent(timestamp="00:01", description="Thud", confidence=1.7)]
        orchestrator, _ = make_orchestrator(detector=FakeDetector(detections=detections))

        events = orchestrator.run_detection(session, video_bytes)

        assert events[0].confidence == 1.0


class TestDirection:
    """Tests for the direction stage."""

    def test_failure_restores_prior_state(self, make_orchestrator, session, video_bytes):
        """Events keep their status and layers when direction fails."""
        orchestrator, parts = make_orchestrator()
        orchestrator.run(session, video_bytes, style=STYLE)
        before = [(e.status, e.layers) for e in session.events]

        parts["director"].error = DirectionProviderError("bad json")
        with pytest.raises(DirectionError):
            orchestrator.run_direction(session, "Film Noir")

        assert [(e.status, e.layers) for e in session.events] == before
        assert session.style == STYLE

    def test_plan_count_mismatch_is_failure(self, make_orchestrator, session, video_bytes):
        """A plan list shorter than the events is rejected."""
        orchestrator, _ = make_orchestrator(director=FakeDirector(drop=1))
        orchestrator.run_detection(session, video_bytes)

        with pytest.raises(DirectionError, match="2 plans for 3 events"):
            orchestrator.run_direction(session, STYLE)

        assert all(e.status is EventStatus.DETECTED for e in session.events)
        assert all(e.layers is None for e in session.events)

    def test_director_gets_copies(self, make_orchestrator, session, video_bytes):
        """The director cannot mutate the session's events."""

        class MutatingDirector(FakeDirector):
            def direct(self, events, style):
                for event in events:
                    event.description = "tampered"
                return super().direct(events, style)

        orchestrator, _ = make_orchestrator(director=MutatingDirector())
        orchestrator.run_detection(session, video_bytes)
        orchestrator.run_direction(session, STYLE)

        assert session.events[0].description == "Door slams"

    def test_success_moves_events_to_sourcing(
        self, make_orchestrator, session, video_bytes
    ):
        """Directed events carry layers and await production."""
        orchestrator, _ = make_orchestrator()
        orchestrator.run_detection(session, video_bytes)

        events = orchestrator.run_direction(session, STYLE)

        assert all(e.status is EventStatus.SOURCING for e in events)
        assert events[0].layers.spot == "Door slams"
        assert events[0].layers.texture == "Door slams texture"

    def test_production_requires_layers(self, make_orchestrator, session, video_bytes):
        """Producing undirected events is a pipeline error."""
        orchestrator, _ = make_orchestrator()
        orchestrator.run_detection(session, video_bytes)

        with pytest.raises(PipelineError, match="no sound layers"):
            orchestrator.run_production(session, STYLE)


class TestReview:
    """Tests for the review stage."""

    def test_review_failure_accepts_batch(
        self, make_orchestrator, session, video_bytes, caplog
    ):
        """A failing reviewer is logged and every sound is accepted."""
        orchestrator, parts = make_orchestrator(
            reviewer=FakeReviewer(error=ReviewProviderError("timeout"))
        )

        with caplog.at_level(logging.WARNING):
            events = orchestrator.run(session, video_bytes, style=STYLE)

        assert all(e.status is EventStatus.READY for e in events)
        assert all(e.regeneration_count == 0 for e in events)
        assert len(parts["synthesizer"].calls) == 3
        assert "Review unavailable" in caplog.text

    def test_missing_verdict_counts_as_pass(
        self, make_orchestrator, session, video_bytes
    ):
        """Events the reviewer says nothing about are accepted."""
        orchestrator, _ = make_orchestrator(reviewer=FakeReviewer(omit={"Door slams"}))
        orchestrator.run_detection(session, video_bytes)
        orchestrator.run_direction(session, STYLE)
        orchestrator.run_production(session, STYLE)

        verdicts = orchestrator.run_review(session, None, STYLE)

        assert all(v.passed for v in verdicts)
        assert session.events[0].status is EventStatus.READY

    def test_verdicts_use_session_positions(
        self, make_orchestrator, session, video_bytes
    ):
        """Reviewing a subset maps batch positions back to session indices."""
        orchestrator, _ = make_orchestrator(
            reviewer=FakeReviewer(reject={"Glass shatters"})
        )
        orchestrator.run_detection(session, video_bytes)
        orchestrator.run_direction(session, STYLE)
        orchestrator.run_production(session, STYLE)

        verdicts = orchestrator.run_review(session, [2], STYLE)

        assert [(v.event_index, v.passed) for v in verdicts] == [(2, False)]
        assert session.events[2].status is EventStatus.REJECTED
        assert session.events[0].status is EventStatus.REVIEWING

    def test_pass_after_regeneration_clears_feedback(
        self, make_orchestrator, session, video_bytes
    ):
        reviewer = FakeReviewer(reject={"Glass shatters"})
        orchestrator, _ = make_orchestrator(reviewer=reviewer)
        orchestrator.run_detection(session, video_bytes)
        orchestrator.run_direction(session, STYLE)
        orchestrator.run_production(session, STYLE)
        verdicts = orchestrator.run_review(session, None, STYLE)
        assert session.events[2].qc_feedback == "Too thin (review 1)"

        reviewer.reject = set()
        regenerated = orchestrator.regeneration_round(session, [2], verdicts, STYLE)
        orchestrator.run_review(session, regenerated, STYLE)

        assert regenerated == [2]
        assert session.events[2].status is EventStatus.READY
        assert session.events[2].qc_feedback is None
        assert session.events[2].regeneration_count == 1

    def test_placeholder_is_reviewed_like_any_sound(
        self, make_orchestrator, session, video_bytes
    ):
        """Synthesis failure attaches a placeholder and the run still finishes."""
        from foley.providers.interface import SynthesisError

        orchestrator, _ = make_orchestrator(
            synthesizer=FakeSynthesizer(error=SynthesisError("401"))
        )

        events = orchestrator.run(session, video_bytes, style=STYLE)

        assert all(e.audio_asset.is_placeholder for e in events)
        assert all(e.provenance is Provenance.PENDING for e in events)
        assert all(e.status is EventStatus.READY for e in events)


class TestManualEdit:
    """Tests for human-requested regeneration."""

    def test_edit_regenerates_one_event(self, make_orchestrator, session, video_bytes):
        """Feedback is folded into the query and review is bypassed."""
        orchestrator, parts = make_orchestrator()
        events = orchestrator.run(session, video_bytes, style=STYLE)
        reviews_before = len(parts["reviewer"].calls)

        edited = orchestrator.manual_edit(session, events[0].id, "make it heavier")

        assert edited is session.events[0]
        assert edited.status is EventStatus.READY
        assert edited.user_feedback == "make it heavier"
        assert edited.regeneration_count == 1
        assert parts["synthesizer"].calls[-1] == (
            "Door slams. User feedback: make it heavier Cinematic Realism sound effect"
        )
        assert len(parts["reviewer"].calls) == reviews_before
        assert session.events[1].user_feedback is None

    def test_edit_ignores_attempt_cap(self, make_orchestrator, session, video_bytes):
        """Manual edits are not limited by max_attempts."""
        orchestrator, _ = make_orchestrator(max_attempts=1)
        events = orchestrator.run(session, video_bytes, style=STYLE)

        for _ in range(3):
            orchestrator.manual_edit(session, events[2].id, "less reverb")

        assert session.events[2].regeneration_count == 3

    def test_unknown_event(self, make_orchestrator, session, video_bytes):
        """An unknown id raises EventNotFoundError."""
        orchestrator, _ = make_orchestrator()
        orchestrator.run(session, video_bytes, style=STYLE)

        with pytest.raises(EventNotFoundError) as exc_info:
            orchestrator.manual_edit(session, "evt-0-99", "louder")

        assert exc_info.value.event_id == "evt-0-99"


class TestResetAndCancel:
    """Tests for reset and cooperative cancellation."""

    def test_reset_restores_detection_baseline(
        self, make_orchestrator, session, video_bytes
    ):
        """Reset drops layers, audio and feedback but keeps the cache."""
        orchestrator, parts = make_orchestrator(
            reviewer=FakeReviewer(reject={"Door slams"})
        )
        events = orchestrator.run(session, video_bytes, style=STYLE)
        ids = [e.id for e in events]

        orchestrator.reset(session)

        assert [e.id for e in session.events] == ids
        for event in session.events:
            assert event.status is EventStatus.DETECTED
            assert event.layers is None
            assert event.audio_asset is None
            assert event.qc_feedback is None
            assert event.regeneration_count == 0
        assert session.cache.is_valid_for(session.video_id)

        orchestrator.run(session, video_bytes, style=STYLE)
        assert len(parts["detector"].calls) == 1

    def test_reset_without_cache_clears_events(self, make_orchestrator, session):
        """Nothing cached means nothing to restore."""
        orchestrator, _ = make_orchestrator()

        assert orchestrator.reset(session) == []

    def test_cancel_during_production(self, make_orchestrator, session, video_bytes):
        """Cancelling stops before the next engine call and resets the session."""
        holder = []

        def cancel_on_first_production(event):
            if event.stage is PipelineStage.ENGINE and event.event_index == 0:
                holder[0].cancel()

        orchestrator, parts = make_orchestrator(
            progress_callback=cancel_on_first_production
        )
        holder.append(orchestrator)

        with pytest.raises(RunCancelled):
            orchestrator.run(session, video_bytes, style=STYLE)

        assert len(parts["synthesizer"].calls) == 1
        assert all(e.status is EventStatus.DETECTED for e in session.events)
        assert len(session.events) == 3
        assert not orchestrator.cancel_requested

    def test_cancel_before_run_is_cleared(self, make_orchestrator, session, video_bytes):
        """A stale cancel request does not abort the next run."""
        orchestrator, _ = make_orchestrator()
        orchestrator.cancel()

        events = orchestrator.run(session, video_bytes, style=STYLE)

        assert len(events) == 3


class TestProgress:
    """Tests for progress reporting."""

    def test_progress_events_cover_every_stage(
        self, make_orchestrator, session, video_bytes
    ):
        """Each stage reports at least once."""
        seen = []
        orchestrator, _ = make_orchestrator(progress_callback=seen.append)

        orchestrator.run(session, video_bytes, style=STYLE)

        stages = {event.stage for event in seen}
        assert {
            PipelineStage.SPOTTER,
            PipelineStage.DIRECTOR,
            PipelineStage.ENGINE,
            PipelineStage.QC,
        } <= stages

    def test_failing_callback_does_not_break_run(
        self, make_orchestrator, session, video_bytes, caplog
    ):
        """Observer exceptions are logged and ignored."""

        def broken(event):
            raise RuntimeError("display closed")

        orchestrator, _ = make_orchestrator(progress_callback=broken)

        with caplog.at_level(logging.WARNING):
            events = orchestrator.run(session, video_bytes, style=STYLE)

        assert all(e.status is EventStatus.READY for e in events)
        assert "display closed" in caplog.text


class TestConstruction:
    """Tests for constructor validation."""

    def test_negative_attempts_rejected(self, make_orchestrator):
        with pytest.raises(ValueError):
            make_orchestrator(max_attempts=-1)

    def test_zero_max_events_rejected(self, make_orchestrator):
        with pytest.raises(ValueError):
            make_orchestrator(max_events=0)
