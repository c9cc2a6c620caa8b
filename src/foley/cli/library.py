"""CLI commands for the sound asset library."""

from __future__ import annotations

import json

import click

from foley.cli.exit_codes import ExitCode
from foley.cli.loaders import load_config_or_exit
from foley.cli.output import error_exit
from foley.providers.factory import create_store
from foley.providers.interface import AssetStoreError


@click.group("library")
def library_group() -> None:
    """Inspect the sound asset library.

    Examples:

        # Show how many sounds are cached
        foley library stats
    """
    pass


@library_group.command("stats")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
@click.pass_context
def stats_command(ctx: click.Context, json_output: bool) -> None:
    """Show the number of sounds in the configured library."""
    config = load_config_or_exit(ctx, json_output)
    backend = config.store.backend.lower()

    try:
        store = create_store(config)
        if store is None:
            total = 0
        else:
            try:
                total = store.count()
            finally:
                store.close()
    except AssetStoreError as e:
        error_exit(str(e), ExitCode.GENERAL_ERROR, json_output)

    location = {
        "sqlite": str(config.library_path),
        "http": config.store.url or "",
        "none": "disabled",
    }.get(backend, "")

    if json_output:
        click.echo(
            json.dumps(
                {"backend": backend, "location": location, "total_sounds": total},
                indent=2,
            )
        )
        return

    click.echo(f"Backend:  {backend} ({location})")
    click.echo(f"Sounds:   {total}")
