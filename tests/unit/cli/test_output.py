"""Tests for cli/output.py module."""

import json
from pathlib import Path

import pytest

from foley.cli.exit_codes import ExitCode
from foley.cli.output import (
    CLIResult,
    error_exit,
    exit_code_for,
    pipeline_error_exit,
    provenance_counts,
    success_output,
)
from foley.domain.enums import Provenance
from foley.domain.models import AudioAsset, SoundEvent
from foley.workflow.exceptions import (
    DetectionError,
    DirectionError,
    EventNotFoundError,
    PipelineError,
    RunCancelled,
    SessionFileError,
)


def _event(index: int, provenance: Provenance, asset: AudioAsset | None = None):
    return SoundEvent(
        id=f"evt-1-{index}",
        timestamp=f"00:0{index}",
        description="Door slams",
        confidence=0.9,
        audio_asset=asset,
        provenance=provenance,
    )


class TestErrorExit:
    """Tests for error_exit function."""

    def test_human_format_exit(self, capsys) -> None:
        """Human format should print 'Error: message' and exit."""
        with pytest.raises(SystemExit) as exc_info:
            error_exit("Something failed", ExitCode.GENERAL_ERROR, json_output=False)

        assert exc_info.value.code == 1
        assert "Error: Something failed" in capsys.readouterr().err

    def test_json_format_exit(self, capsys) -> None:
        """JSON format should print JSON error and exit."""
        with pytest.raises(SystemExit) as exc_info:
            error_exit("No such event", ExitCode.EVENT_NOT_FOUND, json_output=True)

        assert exc_info.value.code == 42

        parsed = json.loads(capsys.readouterr().err)
        assert parsed["status"] == "failed"
        assert parsed["error"]["code"] == "EVENT_NOT_FOUND"
        assert parsed["error"]["message"] == "No such event"

    def test_int_exit_code(self) -> None:
        """Should work with integer exit codes."""
        with pytest.raises(SystemExit) as exc_info:
            error_exit("Failed", 7, json_output=False)

        assert exc_info.value.code == 7


class TestPipelineErrors:
    """Tests for mapping orchestrator failures to exit codes."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (RunCancelled("stopped"), ExitCode.INTERRUPTED),
            (DetectionError("no events"), ExitCode.DETECTION_FAILED),
            (DirectionError("bad layers"), ExitCode.DIRECTION_FAILED),
            (EventNotFoundError("evt-0-9"), ExitCode.EVENT_NOT_FOUND),
            (SessionFileError("locked"), ExitCode.GENERAL_ERROR),
            (PipelineError("boom"), ExitCode.GENERAL_ERROR),
        ],
    )
    def test_exit_code_for(self, error: Exception, expected: ExitCode) -> None:
        assert exit_code_for(error) is expected

    def test_pipeline_error_exit_json(self, capsys) -> None:
        """The mapped code name and the error text reach stderr."""
        with pytest.raises(SystemExit) as exc_info:
            pipeline_error_exit(EventNotFoundError("evt-0-9"), json_output=True)

        assert exc_info.value.code == 42
        parsed = json.loads(capsys.readouterr().err)
        assert parsed["error"]["code"] == "EVENT_NOT_FOUND"
        assert "evt-0-9" in parsed["error"]["message"]

    def test_pipeline_error_exit_human(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pipeline_error_exit(DirectionError("director offline"))

        assert exc_info.value.code == 41
        assert "Error: director offline" in capsys.readouterr().err


class TestCLIResult:
    """Tests for CLIResult serialization."""

    def test_success_json_merges_data(self) -> None:
        result = CLIResult(success=True, message="Done", data={"events": 3})
        parsed = json.loads(result.to_json())

        assert parsed == {"status": "completed", "message": "Done", "events": 3}

    def test_failure_json(self) -> None:
        result = CLIResult(
            success=False, message="Bad", exit_code=ExitCode.DETECTION_FAILED
        )
        parsed = json.loads(result.to_json())

        assert parsed["status"] == "failed"
        assert parsed["error"]["code"] == "DETECTION_FAILED"

    def test_success_output_human(self, capsys) -> None:
        success_output(CLIResult(success=True, message="All good"))
        assert capsys.readouterr().out == "All good\n"

    def test_success_output_json(self, capsys) -> None:
        success_output(CLIResult(success=True, message="ok"), json_output=True)
        assert json.loads(capsys.readouterr().out)["status"] == "completed"


class TestRunSummary:
    """Tests for the run and edit summaries."""

    def test_provenance_counts_include_zeroes(self) -> None:
        counts = provenance_counts(
            [_event(1, Provenance.CACHE_HIT), _event(2, Provenance.CACHE_HIT)]
        )

        assert counts[Provenance.CACHE_HIT.value] == 2
        assert counts[Provenance.SYNTHESIZED.value] == 0
        assert counts[Provenance.PENDING.value] == 0
        assert sum(counts.values()) == 2

    def test_for_run(self, tmp_path: Path) -> None:
        """The message counts each provenance and names the cue sheet."""
        events = [
            _event(1, Provenance.CACHE_HIT),
            _event(2, Provenance.SYNTHESIZED),
            _event(3, Provenance.PENDING),
        ]
        cue_sheet = tmp_path / "cue_sheet.json"

        result = CLIResult.for_run(
            events,
            style="Film Noir",
            session_path=tmp_path / "scene.foley.json",
            cue_sheet=cue_sheet,
            audio_files=[tmp_path / "01_door.mp3"],
        )

        assert result.success
        assert result.message == (
            "3 sounds ready (1 from library, 1 synthesized, 1 placeholders). "
            f"Cue sheet: {cue_sheet}"
        )
        assert result.data["style"] == "Film Noir"
        assert result.data["audio_files"] == [str(tmp_path / "01_door.mp3")]
        assert result.data["summary"]["synthesized"] == 1
        assert [e["id"] for e in result.data["events"]] == [
            "evt-1-1",
            "evt-1-2",
            "evt-1-3",
        ]

    def test_for_edit_with_asset(self) -> None:
        asset = AudioAsset(uri="synth:abc", path="/out/02_door.mp3")
        result = CLIResult.for_edit(_event(2, Provenance.SYNTHESIZED, asset))

        assert result.message == "[00:02] regenerated (synthesized): /out/02_door.mp3"
        assert result.data["event"]["id"] == "evt-1-2"

    def test_for_edit_without_asset(self) -> None:
        result = CLIResult.for_edit(_event(4, Provenance.PENDING))
        assert result.message == "[00:04] regenerated"
