"""Logging configuration for Foley.

Provides configure_logging() to set up logging based on LoggingConfig.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from foley.logging.context import PipelineContextFilter
from foley.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from foley.config.models import LoggingConfig

_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

TEXT_FORMAT = "%(asctime)s - %(stage_tag)s%(name)s - %(levelname)s - %(message)s"


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger from a LoggingConfig.

    Installs a rotating file handler when a file is configured and a stderr
    handler when requested (or when the file cannot be opened). Existing
    root handlers are replaced.

    Args:
        config: Logging configuration.
    """
    level = _LEVEL_MAP.get(config.level.casefold(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if config.format.casefold() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    context_filter = PipelineContextFilter()

    file_handler_added = False
    if config.file:
        try:
            file_path = Path(config.file).expanduser()
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(context_filter)
            root_logger.addHandler(file_handler)
            file_handler_added = True
        except OSError as e:
            sys.stderr.write(f"Warning: Could not open log file {config.file}: {e}\n")

    if config.include_stderr or not file_handler_added:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(formatter)
        stderr_handler.addFilter(context_filter)
        root_logger.addHandler(stderr_handler)
