"""Core utilities shared across Foley modules."""

from foley.core.file_utils import (
    compute_bytes_hash,
    compute_content_hash,
    extension_for_mime,
    guess_video_mime_type,
    safe_filename,
)
from foley.core.json_utils import (
    JsonParseResult,
    parse_json_safe,
    parse_json_with_schema,
    strip_code_fences,
)
from foley.core.text_utils import search_terms
from foley.core.timestamps import format_timestamp, parse_timestamp

__all__ = [
    "JsonParseResult",
    "compute_bytes_hash",
    "compute_content_hash",
    "extension_for_mime",
    "format_timestamp",
    "guess_video_mime_type",
    "parse_json_safe",
    "parse_json_with_schema",
    "parse_timestamp",
    "safe_filename",
    "search_terms",
    "strip_code_fences",
]
