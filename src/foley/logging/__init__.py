"""Structured logging module for Foley.

Provides configurable logging with JSON format support and file rotation,
plus pipeline context (stage and event index) on every record.
"""

from foley.logging.config import configure_logging
from foley.logging.context import (
    PipelineContextFilter,
    clear_pipeline_context,
    get_pipeline_context,
    pipeline_context,
    set_pipeline_context,
)
from foley.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "PipelineContextFilter",
    "clear_pipeline_context",
    "configure_logging",
    "get_pipeline_context",
    "pipeline_context",
    "set_pipeline_context",
]
