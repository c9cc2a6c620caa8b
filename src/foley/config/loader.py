"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables
3. Config file (~/.foley/config.toml)
4. Default values

Environment variables:
- FOLEY_CONFIG_PATH: Path to config file (overrides default location)
- FOLEY_DATA_DIR: Path to the data directory (overrides ~/.foley/)
- FOLEY_GEMINI_API_KEY, GEMINI_API_KEY, GOOGLE_API_KEY: Gemini API key
- FOLEY_GEMINI_MODEL: Model for detection, direction and review
- ELEVENLABS_API_KEY: Sound-generation API key
- FOLEY_STORE_BACKEND: sqlite, http or none
- FOLEY_STORE_PATH: SQLite asset library path
- FOLEY_STORE_URL: Asset library service URL
- FOLEY_SIMILARITY_THRESHOLD: Cache acceptance threshold (0-1)
- FOLEY_MAX_ATTEMPTS: Maximum automatic regeneration rounds
- FOLEY_MAX_EVENTS: Maximum events kept from detection
- FOLEY_LOG_LEVEL, FOLEY_LOG_FILE, FOLEY_LOG_FORMAT: Logging overrides
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from foley.config.env import EnvReader
from foley.config.models import (
    DEFAULT_STYLE,
    AssetStoreConfig,
    EngineConfig,
    FoleyConfig,
    GeminiConfig,
    LoggingConfig,
    PipelineConfig,
    SynthesisConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".foley"
CONFIG_FILENAME = "config.toml"


def get_data_dir(env: Mapping[str, str] | None = None) -> Path:
    """Get the Foley data directory.

    Holds the config file, the local asset library (library.db) and, by
    default, the log file. Overridden by FOLEY_DATA_DIR.
    """
    return EnvReader(env).get_path("FOLEY_DATA_DIR", default=DEFAULT_CONFIG_DIR)


def get_default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Get the config file path, honoring FOLEY_CONFIG_PATH."""
    reader = EnvReader(env)
    env_path = reader.get_path("FOLEY_CONFIG_PATH")
    if env_path is not None:
        return env_path
    return get_data_dir(env) / CONFIG_FILENAME


def load_config_file(
    path: Path | None = None, env: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Load configuration from a TOML file.

    Args:
        path: Path to config file. If None, uses the default location.
        env: Optional environment mapping (for the default location).

    Returns:
        Parsed configuration dict. Empty dict if the file doesn't exist or
        cannot be parsed.
    """
    if path is None:
        path = get_default_config_path(env)

    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
        logger.debug("Loaded config from %s", path)
        return config
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}


def _first(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _file_path(section: dict[str, Any], key: str) -> Path | None:
    value = section.get(key)
    return Path(value).expanduser() if value else None


def get_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
    # CLI overrides (highest precedence)
    similarity_threshold: float | None = None,
    max_attempts: int | None = None,
    store_backend: str | None = None,
) -> FoleyConfig:
    """Get Foley configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides FOLEY_CONFIG_PATH).
        env: Environment mapping; None reads os.environ.
        similarity_threshold: CLI override for the engine threshold.
        max_attempts: CLI override for automatic regeneration rounds.
        store_backend: CLI override for the asset store backend.

    Returns:
        FoleyConfig with merged configuration.

    Raises:
        ValueError: If a merged value fails validation.
    """
    reader = EnvReader(env)
    file_config = load_config_file(config_path, env)

    gemini_file = file_config.get("gemini", {})
    gemini = GeminiConfig(
        api_key=reader.get_first_str(
            "FOLEY_GEMINI_API_KEY",
            "GEMINI_API_KEY",
            "GOOGLE_API_KEY",
            default=gemini_file.get("api_key"),
        ),
        model=reader.get_str(
            "FOLEY_GEMINI_MODEL", gemini_file.get("model", GeminiConfig.model)
        ),
        embedding_model=reader.get_str(
            "FOLEY_EMBEDDING_MODEL",
            gemini_file.get("embedding_model", GeminiConfig.embedding_model),
        ),
        timeout_seconds=reader.get_int(
            "FOLEY_GEMINI_TIMEOUT",
            gemini_file.get("timeout_seconds", GeminiConfig.timeout_seconds),
        ),
    )

    synthesis_file = file_config.get("synthesis", {})
    synthesis = SynthesisConfig(
        api_key=reader.get_str(
            "ELEVENLABS_API_KEY", synthesis_file.get("api_key")
        ),
        url=synthesis_file.get("url", SynthesisConfig.url),
        model_id=synthesis_file.get("model_id", SynthesisConfig.model_id),
        duration_seconds=reader.get_float(
            "FOLEY_SYNTHESIS_DURATION",
            synthesis_file.get("duration_seconds", SynthesisConfig.duration_seconds),
        ),
        prompt_influence=synthesis_file.get(
            "prompt_influence", SynthesisConfig.prompt_influence
        ),
        timeout_seconds=synthesis_file.get(
            "timeout_seconds", SynthesisConfig.timeout_seconds
        ),
    )

    store_file = file_config.get("store", {})
    store = AssetStoreConfig(
        backend=_first(
            store_backend,
            reader.get_str("FOLEY_STORE_BACKEND"),
            store_file.get("backend"),
            AssetStoreConfig.backend,
        ),
        path=reader.get_path("FOLEY_STORE_PATH", default=_file_path(store_file, "path")),
        url=reader.get_str("FOLEY_STORE_URL", store_file.get("url")),
        text_match_score=store_file.get(
            "text_match_score", AssetStoreConfig.text_match_score
        ),
        search_limit=store_file.get("search_limit", AssetStoreConfig.search_limit),
        timeout_seconds=store_file.get(
            "timeout_seconds", AssetStoreConfig.timeout_seconds
        ),
    )

    engine_file = file_config.get("engine", {})
    engine = EngineConfig(
        similarity_threshold=_first(
            similarity_threshold,
            reader.get_float("FOLEY_SIMILARITY_THRESHOLD"),
            engine_file.get("similarity_threshold"),
            EngineConfig.similarity_threshold,
        ),
    )

    pipeline_file = file_config.get("pipeline", {})
    pipeline = PipelineConfig(
        max_regeneration_attempts=_first(
            max_attempts,
            reader.get_int("FOLEY_MAX_ATTEMPTS"),
            pipeline_file.get("max_regeneration_attempts"),
            PipelineConfig.max_regeneration_attempts,
        ),
        max_events=reader.get_int(
            "FOLEY_MAX_EVENTS",
            pipeline_file.get("max_events", PipelineConfig.max_events),
        ),
        default_style=pipeline_file.get("default_style", DEFAULT_STYLE),
    )

    logging_file = file_config.get("logging", {})
    logging_config = LoggingConfig(
        level=reader.get_str("FOLEY_LOG_LEVEL", logging_file.get("level", "info")),
        file=reader.get_path("FOLEY_LOG_FILE", default=_file_path(logging_file, "file")),
        format=reader.get_str("FOLEY_LOG_FORMAT", logging_file.get("format", "text")),
        include_stderr=reader.get_bool(
            "FOLEY_LOG_INCLUDE_STDERR", logging_file.get("include_stderr", False)
        ),
        max_bytes=logging_file.get("max_bytes", LoggingConfig.max_bytes),
        backup_count=logging_file.get("backup_count", LoggingConfig.backup_count),
    )

    return FoleyConfig(
        gemini=gemini,
        synthesis=synthesis,
        store=store,
        engine=engine,
        pipeline=pipeline,
        logging=logging_config,
        data_dir=get_data_dir(env),
    )
