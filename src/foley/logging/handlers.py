"""Custom logging handlers for Foley.

Provides JSONFormatter for structured log output.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line.

    Each entry has timestamp (ISO-8601 UTC), level, message and, when
    present, logger, context (non-standard record attributes such as
    stage and event_index) and exception.
    """

    # Standard LogRecord attributes to exclude from context
    _STANDARD_ATTRS: frozenset[str] = frozenset(
        {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "message",
            "exc_info",
            "exc_text",
            "stack_info",
            "taskName",
            "stage_tag",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        record_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if record.name and record.name != "root":
            log_entry["logger"] = record.name

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
            and not key.startswith("_")
            and value is not None
        }
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)
