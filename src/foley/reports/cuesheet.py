"""Cue sheet rendering and asset export.

A cue sheet is the hand-off artifact of a session: every event in
detection order with its layers, provenance, review outcome and the
reference to its final audio.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from foley.core.file_utils import extension_for_mime, safe_filename
from foley.workflow.session import Session

logger = logging.getLogger(__name__)

PROJECT_NAME = "Foley Agent Session"


class CueSheetFormat(Enum):
    """Supported cue sheet serializations."""

    JSON = "json"
    YAML = "yaml"


def build_cue_sheet(
    session: Session, generated_at: datetime | None = None
) -> dict[str, Any]:
    """Build the cue sheet document for a session.

    Args:
        session: Session to describe.
        generated_at: Generation time; defaults to now (UTC).

    Returns:
        Plain dict ready for JSON or YAML serialization.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    events = []
    for event in session.events:
        asset = event.audio_asset
        audio = None
        if asset is not None:
            audio = asset.path or asset.uri
        events.append(
            {
                "id": event.id,
                "timestamp": event.timestamp,
                "seconds": event.seconds,
                "description": event.description,
                "confidence": event.confidence,
                "layers": event.layers.to_dict() if event.layers else None,
                "provenance": event.provenance.value,
                "status": event.status.value,
                "regeneration_count": event.regeneration_count,
                "qc_feedback": event.qc_feedback,
                "user_feedback": event.user_feedback,
                "audio": audio,
            }
        )

    return {
        "project": PROJECT_NAME,
        "source_file": session.video_name,
        "video_id": session.video_id,
        "vibe": session.style,
        "generated_at": generated_at.isoformat(),
        "events": events,
    }


def render_cue_sheet(
    session: Session,
    fmt: CueSheetFormat = CueSheetFormat.JSON,
    generated_at: datetime | None = None,
) -> str:
    """Serialize a session's cue sheet as JSON or YAML."""
    document = build_cue_sheet(session, generated_at)
    if fmt is CueSheetFormat.YAML:
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
    return json.dumps(document, indent=2)


def _atomic_write_text(path: Path, content: str) -> None:
    """Write content to ``path`` via a temp file in the same directory."""
    fd, temp_path_str = tempfile.mkstemp(suffix=path.suffix, dir=path.parent, text=True)
    temp_path = Path(temp_path_str)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        temp_path.replace(path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def write_cue_sheet(
    session: Session,
    output_path: Path,
    fmt: CueSheetFormat = CueSheetFormat.JSON,
) -> Path:
    """Write the cue sheet to ``output_path``, creating parent directories.

    Raises:
        OSError: If the file cannot be written.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_text(output_path, render_cue_sheet(session, fmt))
    logger.info("Wrote cue sheet to %s", output_path)
    return output_path


def export_assets(session: Session, output_dir: Path) -> list[Path]:
    """Write each event's audio bytes to ``output_dir``.

    Events without in-memory audio (placeholders, or assets loaded from a
    saved session) are skipped. Each written asset gets its ``path`` set so
    the cue sheet references the file.

    Returns:
        Paths of the files written, in event order.
    """
    output_dir = Path(output_dir)
    written: list[Path] = []
    for index, event in enumerate(session.events):
        asset = event.audio_asset
        if asset is None or asset.is_placeholder or not asset.data:
            continue
        output_dir.mkdir(parents=True, exist_ok=True)
        filename = (
            f"{index + 1:02d}_{safe_filename(event.spot_query)}"
            f"{extension_for_mime(asset.mime_type)}"
        )
        path = output_dir / filename
        path.write_bytes(asset.data)
        asset.path = str(path)
        written.append(path)

    skipped = len(session.events) - len(written)
    logger.info(
        "Exported %d audio file(s) to %s (%d without audio)",
        len(written),
        output_dir,
        skipped,
    )
    return written
