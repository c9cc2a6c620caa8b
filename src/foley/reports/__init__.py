"""Session reports: cue sheets and exported audio."""

from foley.reports.cuesheet import (
    PROJECT_NAME,
    CueSheetFormat,
    build_cue_sheet,
    export_assets,
    render_cue_sheet,
    write_cue_sheet,
)

__all__ = [
    "PROJECT_NAME",
    "CueSheetFormat",
    "build_cue_sheet",
    "export_assets",
    "render_cue_sheet",
    "write_cue_sheet",
]
