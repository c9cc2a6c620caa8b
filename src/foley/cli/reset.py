"""CLI command for reverting a session to its detection baseline."""

from __future__ import annotations

from pathlib import Path

import click

from foley.cli.exit_codes import ExitCode
from foley.cli.loaders import load_session_or_exit
from foley.cli.output import error_exit
from foley.workflow import SessionFileError


@click.command("reset")
@click.argument("session_path", type=click.Path(path_type=Path))
def reset_command(session_path: Path) -> None:
    """Revert a session's events to the cached detection results.

    Layers, audio and feedback are dropped. The detection cache is kept,
    so the next run only repeats direction and production.
    """
    session = load_session_or_exit(session_path)

    if session.reset():
        message = f"Reset {len(session.events)} events; analysis retained"
    else:
        message = "No cached analysis; events cleared"

    try:
        session.save(session_path)
    except SessionFileError as e:
        error_exit(str(e), ExitCode.GENERAL_ERROR)
    click.echo(message)
