"""CLI module for Foley."""

import logging
from pathlib import Path

import click
from dotenv import load_dotenv

_logging_configured: bool = False

logger = logging.getLogger(__name__)


def _configure_logging(
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    config_path: Path | None,
) -> None:
    """Configure logging from CLI options.

    Args:
        log_level: Override log level (debug, info, warning, error).
        log_file: Override log file path.
        log_json: Use JSON log format.
        config_path: Config file given with --config, if any.
    """
    global _logging_configured
    if _logging_configured:
        return

    from foley.config.logging_factory import configure_logging_from_cli

    try:
        configure_logging_from_cli(
            config_path=config_path,
            level=log_level,
            file=log_file,
            format="json" if log_json else None,
        )
    except ValueError as e:
        # Commands report the config error with the proper exit code
        logger.debug("Logging not configured: %s", e)
        return
    _logging_configured = True


@click.group()
@click.version_option(package_name="foley")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config.toml (default: ~/.foley/config.toml).",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    config_path: Path | None,
) -> None:
    """Foley - Spot, direct and source sound effects for video."""
    load_dotenv()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    _configure_logging(log_level, log_file, log_json, config_path)


# Defer import to avoid circular dependency
def _register_commands():
    from foley.cli.edit import edit_command
    from foley.cli.export import export_command
    from foley.cli.library import library_group
    from foley.cli.reset import reset_command
    from foley.cli.run import run_command

    main.add_command(run_command)
    main.add_command(edit_command)
    main.add_command(export_command)
    main.add_command(reset_command)
    main.add_command(library_group)


_register_commands()
