"""CLI command for regenerating one sound from human feedback."""

from __future__ import annotations

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
from foley.cli.run import default_output_dir
from foley.providers.factory import create_providers
from foley.providers.interface import AssetStoreError
from foley.reports import export_assets, write_cue_sheet
from foley.workflow import (
    PipelineError,
    PipelineOrchestrator,
    Session,
    SessionFileError,
)


def session_output_dir(session: Session, session_path: Path) -> Path:
    """Return the asset directory a session's run wrote to by default."""
    if session.video_name:
        return default_output_dir(session_path.parent / session.video_name)
    return session_path.parent / "foley_assets"


@click.command("edit")
@click.argument("session_path", type=click.Path(path_type=Path))
@click.argument("event_id")
@click.argument("feedback")
@click.option(
    "--style",
    "-s",
    default=None,
    help="Creative direction label (default: the session's).",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Directory for the new audio file and cue sheet.",
)
@click.option(
    "--offline",
    is_flag=True,
    default=False,
    help="Use deterministic offline providers instead of remote services.",
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
def edit_command(
    ctx: click.Context,
    session_path: Path,
    event_id: str,
    feedback: str,
    style: str | None,
    output_dir: Path | None,
    offline: bool,
    json_output: bool,
) -> None:
    """Regenerate the sound for EVENT_ID using FEEDBACK.

    The request goes straight to the asset engine and the result is
    accepted without review.

    Examples:

        foley edit clip.foley.json evt-1712345678901-2 "make it heavier"
    """
    session = load_session_or_exit(session_path, json_output)
    config = load_config_or_exit(ctx, json_output)
    output_dir = output_dir or session_output_dir(session, session_path)

    try:
        providers = create_providers(config, offline=offline)
    except AssetStoreError as e:
        error_exit(f"Cannot open asset library: {e}", ExitCode.CONFIG_ERROR, json_output)

    orchestrator = PipelineOrchestrator.from_providers(providers, config)
    try:
        event = orchestrator.manual_edit(session, event_id, feedback, style)
    except PipelineError as e:
        pipeline_error_exit(e, json_output)
    finally:
        orchestrator.close()
        providers.close()

    try:
        export_assets(session, output_dir)
        write_cue_sheet(session, output_dir / "cue_sheet.json")
        session.save(session_path)
    except (OSError, SessionFileError) as e:
        error_exit(f"Cannot write results: {e}", ExitCode.GENERAL_ERROR, json_output)

    success_output(CLIResult.for_edit(event), json_output)
