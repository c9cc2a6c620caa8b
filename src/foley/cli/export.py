"""CLI command for exporting a session's cue sheet."""

from __future__ import annotations

from pathlib import Path

import click

from foley.cli.exit_codes import ExitCode
from foley.cli.loaders import load_session_or_exit
from foley.cli.output import error_exit
from foley.reports import CueSheetFormat, render_cue_sheet, write_cue_sheet


@click.command("export")
@click.argument("session_path", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default="json",
    help="Cue sheet format (default: json).",
)
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Write to file instead of stdout.",
)
def export_command(
    session_path: Path,
    output_format: str,
    output_path: Path | None,
) -> None:
    """Export the cue sheet for a saved session.

    Examples:

        foley export clip.foley.json

        foley export clip.foley.json --format yaml -o cues.yaml
    """
    session = load_session_or_exit(session_path)
    fmt = CueSheetFormat(output_format.lower())

    if output_path is None:
        click.echo(render_cue_sheet(session, fmt), nl=False)
        return

    try:
        write_cue_sheet(session, output_path, fmt)
    except OSError as e:
        error_exit(f"Cannot write cue sheet: {e}", ExitCode.GENERAL_ERROR)
    click.echo(f"Cue sheet written to {output_path}")
