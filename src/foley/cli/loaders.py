"""Shared config and session loading with consistent CLI error handling."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from foley.cli.exit_codes import ExitCode
from foley.cli.output import error_exit
from foley.config import FoleyConfig, get_config
from foley.workflow import Session, SessionFileError


def load_config_or_exit(
    ctx: click.Context,
    json_output: bool = False,
    **overrides: Any,
) -> FoleyConfig:
    """Load configuration, honoring the global --config option.

    Args:
        ctx: Click context carrying ``config_path`` in ``obj``.
        json_output: Whether to format errors as JSON.
        **overrides: CLI overrides passed through to get_config().

    Note:
        Exits with CONFIG_ERROR if a merged value fails validation.
    """
    obj = ctx.obj or {}
    try:
        return get_config(config_path=obj.get("config_path"), **overrides)
    except ValueError as e:
        error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR, json_output)


def load_session_or_exit(path: Path, json_output: bool = False) -> Session:
    """Load a saved session file.

    Note:
        Exits with TARGET_NOT_FOUND if the file does not exist, or
        GENERAL_ERROR if it cannot be parsed.
    """
    if not path.exists():
        error_exit(
            f"Session file not found: {path}", ExitCode.TARGET_NOT_FOUND, json_output
        )
    try:
        return Session.load(path)
    except SessionFileError as e:
        error_exit(str(e), ExitCode.GENERAL_ERROR, json_output)
