"""Environment variable reader with dependency injection support.

EnvReader parses FOLEY_* (and provider key) variables with type conversion.
Passing an explicit mapping lets tests exercise the loader without touching
os.environ.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes", "on")


class EnvReader:
    """Typed access to environment variables.

    Example:
        reader = EnvReader()
        threshold = reader.get_float("FOLEY_SIMILARITY_THRESHOLD", 0.85)

        reader = EnvReader(env={"FOLEY_MAX_EVENTS": "5"})
        reader.get_int("FOLEY_MAX_EVENTS", 20)  # Returns 5
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the environment reader.

        Args:
            env: Optional mapping to use instead of os.environ.
        """
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string, treating an empty value as unset."""
        value = self._env.get(var)
        if value is None or value == "":
            return default
        return value

    def get_first_str(self, *names: str, default: str | None = None) -> str | None:
        """Get the first non-empty value among several variable names.

        Used for API keys that may be exported under more than one name.
        """
        for name in names:
            value = self.get_str(name)
            if value is not None:
                return value
        return default

    def get_int(self, var: str, default: int | None = None) -> int | None:
        """Get an integer, logging a warning and returning default if invalid."""
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_float(self, var: str, default: float | None = None) -> float | None:
        """Get a float, logging a warning and returning default if invalid."""
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Get a boolean.

        "true", "1", "yes" and "on" (case-insensitive) are true; any other
        value is false.
        """
        value = self._env.get(var)
        if value is None:
            return default
        return value.lower() in _TRUE_VALUES

    def get_path(
        self, var: str, must_exist: bool = False, default: Path | None = None
    ) -> Path | None:
        """Get a path (tilde-expanded).

        Args:
            var: Environment variable name.
            must_exist: If True, a path that doesn't exist is logged and
                        replaced by default.
            default: Default value if not set.
        """
        value = self._env.get(var)
        if not value:
            return default

        path = Path(value).expanduser()
        if must_exist and not path.exists():
            logger.warning(
                "Environment variable %s points to non-existent path: %s",
                var,
                value,
            )
            return default
        return path
