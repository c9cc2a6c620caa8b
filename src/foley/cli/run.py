"""CLI command for running the full Foley pipeline on a video."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from foley.cli.exit_codes import ExitCode
from foley.cli.loaders import load_config_or_exit, load_session_or_exit
from foley.cli.output import (
    CLIResult,
    error_exit,
    pipeline_error_exit,
    success_output,
)
from foley.core.file_utils import compute_content_hash, guess_video_mime_type
from foley.providers.factory import create_providers
from foley.providers.interface import AssetStoreError
from foley.reports import export_assets, write_cue_sheet
from foley.workflow import (
    DirectionError,
    PipelineError,
    PipelineOrchestrator,
    ProgressEvent,
    RunCancelled,
    Session,
    SessionFileError,
)

logger = logging.getLogger(__name__)


def default_session_path(video: Path) -> Path:
    """Return the default session file for a video (next to it)."""
    return video.with_name(f"{video.stem}.foley.json")


def default_output_dir(video: Path) -> Path:
    """Return the default output directory for a video's assets."""
    return video.with_name(f"{video.stem}_foley")


@click.command("run")
@click.argument(
    "video",
    type=click.Path(path_type=Path),
)
@click.option(
    "--style",
    "-s",
    default=None,
    help="Creative direction label (default: from config).",
)
@click.option(
    "--session",
    "session_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Session file (default: <video>.foley.json next to the video).",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Directory for audio files and the cue sheet (default: <video>_foley/).",
)
@click.option(
    "--offline",
    is_flag=True,
    default=False,
    help="Use deterministic offline providers instead of remote services.",
)
@click.option(
    "--threshold",
    type=float,
    default=None,
    help="Similarity threshold for reusing library sounds (0-1).",
)
@click.option(
    "--max-attempts",
    type=int,
    default=None,
    help="Maximum automatic regeneration rounds (default: 2).",
)
@click.option(
    "--json",
    "-j",
    "json_output",
    is_flag=True,
    default=False,
    help="Output in JSON format",
)
@click.pass_context
def run_command(
    ctx: click.Context,
    video: Path,
    style: str | None,
    session_path: Path | None,
    output_dir: Path | None,
    offline: bool,
    threshold: float | None,
    max_attempts: int | None,
    json_output: bool,
) -> None:
    """Spot, direct, produce and review sound effects for VIDEO.

    Re-running on the same video with its saved session reuses the
    detection results, so only direction and production run again.

    Examples:

        foley run clip.mp4

        foley run clip.mp4 --style "Retro 8-bit"

        foley run clip.mp4 --offline --json
    """
    video = video.expanduser()
    if not video.is_file():
        error_exit(f"Video not found: {video}", ExitCode.TARGET_NOT_FOUND, json_output)

    config = load_config_or_exit(
        ctx,
        json_output,
        similarity_threshold=threshold,
        max_attempts=max_attempts,
    )
    style = style or config.pipeline.default_style
    session_path = session_path or default_session_path(video)
    output_dir = output_dir or default_output_dir(video)

    session = (
        load_session_or_exit(session_path, json_output)
        if session_path.exists()
        else Session(style=style)
    )

    try:
        video_id = compute_content_hash(video)
        video_bytes = None
        if not session.cache.is_valid_for(video_id):
            video_bytes = video.read_bytes()
    except OSError as e:
        error_exit(f"Cannot read video: {e}", ExitCode.TARGET_NOT_FOUND, json_output)
    session.video_name = video.name

    def on_progress(event: ProgressEvent) -> None:
        if not json_output:
            click.echo(event.format())

    try:
        providers = create_providers(config, offline=offline)
    except AssetStoreError as e:
        error_exit(f"Cannot open asset library: {e}", ExitCode.CONFIG_ERROR, json_output)

    orchestrator = PipelineOrchestrator.from_providers(
        providers, config, progress_callback=on_progress
    )
    try:
        orchestrator.run(
            session,
            video_bytes,
            guess_video_mime_type(video),
            style,
            video_id=video_id,
        )
    except KeyboardInterrupt:
        orchestrator.reset(session)
        _save_quietly(session, session_path)
        error_exit("Interrupted", ExitCode.INTERRUPTED, json_output)
    except (RunCancelled, DirectionError) as e:
        _save_quietly(session, session_path)
        pipeline_error_exit(e, json_output)
    except PipelineError as e:
        pipeline_error_exit(e, json_output)
    finally:
        orchestrator.close()
        providers.close()

    try:
        written = export_assets(session, output_dir)
        cue_sheet = write_cue_sheet(session, output_dir / "cue_sheet.json")
        session.save(session_path)
    except (OSError, SessionFileError) as e:
        error_exit(f"Cannot write results: {e}", ExitCode.GENERAL_ERROR, json_output)

    success_output(
        CLIResult.for_run(
            session.events,
            style=session.style,
            session_path=session_path,
            cue_sheet=cue_sheet,
            audio_files=written,
        ),
        json_output,
    )


def _save_quietly(session: Session, path: Path) -> None:
    """Persist the session on an error path; failures are only logged."""
    try:
        session.save(path)
    except SessionFileError as e:
        logger.warning("Could not save session: %s", e)
