"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (config, input)
    20-29: Target/file errors
    40-49: Pipeline errors
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for Foley CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Ctrl+C or cancelled run

    # Validation errors (10-19)
    CONFIG_ERROR = 11

    # Target/file errors (20-29)
    TARGET_NOT_FOUND = 20

    # Pipeline errors (40-49)
    DETECTION_FAILED = 40
    DIRECTION_FAILED = 41
    EVENT_NOT_FOUND = 42
