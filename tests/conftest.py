"""Shared test fixtures for Foley."""

import shutil
import tempfile
from pathlib import Path

import pytest
from fakes import (
    FakeDetector,
    FakeDirector,
    FakeEmbedder,
    FakeReviewer,
    FakeStore,
    FakeSynthesizer,
)

from foley.engine import HybridAssetEngine
from foley.workflow import PipelineOrchestrator, Session


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def session() -> Session:
    """Return an empty session."""
    return Session()


@pytest.fixture
def video_bytes() -> bytes:
    """Return stand-in video content."""
    return b"\x00\x00\x00\x18ftypmp42-fake-video"


@pytest.fixture
def make_orchestrator():
    """Factory building an orchestrator over fake collaborators.

    Returns (orchestrator, collaborators) where collaborators is a dict of
    the fakes by role so tests can inspect recorded calls.
    """
    engines: list[HybridAssetEngine] = []

    def _make(
        detector=None,
        director=None,
        reviewer=None,
        synthesizer=None,
        embedder=None,
        store=None,
        max_attempts: int = 2,
        max_events: int = 20,
        threshold: float = 0.85,
        progress_callback=None,
    ):
        parts = {
            "detector": detector or FakeDetector(),
            "director": director or FakeDirector(),
            "reviewer": reviewer or FakeReviewer(),
            "synthesizer": synthesizer or FakeSynthesizer(),
            "embedder": embedder or FakeEmbedder(),
            "store": store or FakeStore(),
        }
        engine = HybridAssetEngine(
            parts["synthesizer"],
            parts["embedder"],
            parts["store"],
            similarity_threshold=threshold,
        )
        engines.append(engine)
        orchestrator = PipelineOrchestrator(
            parts["detector"],
            parts["director"],
            parts["reviewer"],
            engine,
            max_attempts=max_attempts,
            max_events=max_events,
            progress_callback=progress_callback,
        )
        return orchestrator, parts

    yield _make

    for engine in engines:
        engine.close(timeout=5)
