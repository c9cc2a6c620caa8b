"""JSON helpers for model responses and persisted documents.

Language-model responses frequently arrive wrapped in markdown code fences
or with stray prose around the payload. Functions here normalize that text
and return Result types rather than raising, so callers decide how a parse
failure maps onto their own error taxonomy.

Example usage:
    result = parse_json_with_schema(response.text, SpotterResponse,
                                    context="spotter")
    if result.success:
        actions = result.value.root
    else:
        raise DetectionProviderError(result.error)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from pydantic import BaseModel

T = TypeVar("T")

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class JsonParseResult(Generic[T]):
    """Result of a JSON parsing operation.

    Attributes:
        success: True if parsing succeeded, False otherwise.
        value: The parsed value if successful, None otherwise.
        error: Error message if parsing failed, None otherwise.
    """

    success: bool
    value: T | None
    error: str | None = None


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` fence, if present."""
    text = raw.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1)
    return text


def _error(context: str, message: str) -> str:
    prefix = f"{context}: " if context else ""
    return f"{prefix}{message}"


def parse_json_safe(raw: str | None, *, context: str = "") -> JsonParseResult[Any]:
    """Parse model output as JSON after stripping code fences.

    Args:
        raw: Text to parse. None or blank text is a failure.
        context: Context string for error messages (e.g., agent name).

    Returns:
        JsonParseResult with the decoded value or error information.
    """
    if raw is None or not raw.strip():
        return JsonParseResult(
            success=False, value=None, error=_error(context, "Empty response")
        )

    try:
        return JsonParseResult(success=True, value=json.loads(strip_code_fences(raw)))
    except json.JSONDecodeError as e:
        error_msg = _error(context, f"Invalid JSON at position {e.pos}: {e.msg}")
        logger.warning(error_msg)
        return JsonParseResult(success=False, value=None, error=error_msg)


def parse_json_with_schema(
    raw: str | None,
    schema: type[BaseModel],
    *,
    context: str = "",
) -> JsonParseResult[BaseModel]:
    """Parse JSON and validate it against a Pydantic schema.

    Args:
        raw: JSON text to parse (code fences allowed).
        schema: Pydantic model class (RootModel for top-level arrays).
        context: Context string for error messages.

    Returns:
        JsonParseResult with the validated model instance or error information.
    """
    from pydantic import ValidationError

    parsed = parse_json_safe(raw, context=context)
    if not parsed.success:
        return JsonParseResult(success=False, value=None, error=parsed.error)

    try:
        validated = schema.model_validate(parsed.value)
        return JsonParseResult(success=True, value=validated)
    except ValidationError as e:
        errors = e.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        msg = first_error.get("msg", "validation error")
        error_msg = _error(
            context,
            f"Schema validation failed ({len(errors)} error(s)): {field}: {msg}",
        )
        logger.warning(error_msg)
        return JsonParseResult(success=False, value=None, error=error_msg)
