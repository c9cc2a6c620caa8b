"""Result and error output for Foley commands, as text or JSON."""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn

import click

from foley.cli.exit_codes import ExitCode
from foley.domain.enums import Provenance
from foley.domain.models import SoundEvent
from foley.workflow.exceptions import (
    DetectionError,
    DirectionError,
    EventNotFoundError,
    RunCancelled,
)

# Checked in order; the first matching class wins.
PIPELINE_EXIT_CODES: tuple[tuple[type[Exception], ExitCode], ...] = (
    (RunCancelled, ExitCode.INTERRUPTED),
    (DetectionError, ExitCode.DETECTION_FAILED),
    (DirectionError, ExitCode.DIRECTION_FAILED),
    (EventNotFoundError, ExitCode.EVENT_NOT_FOUND),
)


def exit_code_for(error: Exception) -> ExitCode:
    """Map a pipeline failure to the exit code the CLI reports for it."""
    for error_type, code in PIPELINE_EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCode.GENERAL_ERROR


def provenance_counts(events: Iterable[SoundEvent]) -> dict[str, int]:
    """Count events per provenance, with a zero entry for every provenance."""
    counts = {p.value: 0 for p in Provenance}
    for event in events:
        counts[event.provenance.value] += 1
    return counts


def _error_payload(message: str, code: ExitCode | int) -> dict[str, Any]:
    code_name = code.name if isinstance(code, ExitCode) else "UNKNOWN_ERROR"
    return {"status": "failed", "error": {"code": code_name, "message": message}}


@dataclass
class CLIResult:
    """Outcome of a command, printed by success_output()."""

    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    exit_code: int = 0

    @classmethod
    def for_run(
        cls,
        events: Sequence[SoundEvent],
        *,
        style: str,
        session_path: Path,
        cue_sheet: Path,
        audio_files: Sequence[Path],
    ) -> CLIResult:
        """Summarize a finished run: provenance counts plus written files."""
        counts = provenance_counts(events)
        message = (
            f"{len(events)} sounds ready "
            f"({counts[Provenance.CACHE_HIT.value]} from library, "
            f"{counts[Provenance.SYNTHESIZED.value]} synthesized, "
            f"{counts[Provenance.PENDING.value]} placeholders). "
            f"Cue sheet: {cue_sheet}"
        )
        return cls(
            success=True,
            message=message,
            data={
                "session": str(session_path),
                "cue_sheet": str(cue_sheet),
                "style": style,
                "audio_files": [str(p) for p in audio_files],
                "summary": counts,
                "events": [e.to_dict() for e in events],
            },
        )

    @classmethod
    def for_edit(cls, event: SoundEvent) -> CLIResult:
        """Describe a single regenerated event."""
        message = f"[{event.timestamp}] regenerated"
        if event.audio_asset is not None:
            location = event.audio_asset.path or event.audio_asset.uri
            message += f" ({event.provenance.value}): {location}"
        return cls(success=True, message=message, data={"event": event.to_dict()})

    def to_json(self) -> str:
        if not self.success:
            return json.dumps(_error_payload(self.message, self.exit_code), indent=2)
        output: dict[str, Any] = {"status": "completed", "message": self.message}
        output.update(self.data)
        return json.dumps(output, indent=2)


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Print an error to stderr and exit with ``code``.

    Args:
        message: Error message to display.
        code: Exit code to use (ExitCode enum or int).
        json_output: Whether to format output as JSON.
    """
    if json_output:
        click.echo(json.dumps(_error_payload(message, code)), err=True)
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def pipeline_error_exit(error: Exception, json_output: bool = False) -> NoReturn:
    """Report a failed orchestrator call and exit with its mapped code."""
    error_exit(str(error), exit_code_for(error), json_output)


def success_output(
    result: CLIResult,
    json_output: bool = False,
) -> None:
    """Output successful result in appropriate format."""
    if json_output:
        click.echo(result.to_json())
    else:
        click.echo(result.message)
