"""Timestamp parsing and formatting.

Detection reports timestamps as free text ("00:04", "1:02:03", "4.5").
These helpers convert between that text and seconds.
"""

from __future__ import annotations


def parse_timestamp(value: str | float | int | None) -> float | None:
    """Parse a timestamp into seconds.

    Accepts MM:SS, HH:MM:SS (fractional seconds allowed) or a plain number
    of seconds.

    Args:
        value: Timestamp text or number.

    Returns:
        Seconds as float, or None if the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None

    text = value.strip()
    if not text:
        return None

    parts = text.split(":")
    if len(parts) > 3:
        return None

    try:
        numbers = [float(p) for p in parts]
    except ValueError:
        return None

    if any(n < 0 for n in numbers):
        return None

    seconds = 0.0
    for number in numbers:
        seconds = seconds * 60 + number
    return seconds


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS (or HH:MM:SS past the hour).

    Args:
        seconds: Non-negative number of seconds.

    Returns:
        Zero-padded timestamp string.
    """
    total = max(0, int(round(seconds)))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
