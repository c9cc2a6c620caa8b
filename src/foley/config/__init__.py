"""Configuration management for Foley.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (FOLEY_*, provider API keys)
3. Config file (~/.foley/config.toml)
4. Default values (lowest priority)
"""

from foley.config.env import EnvReader
from foley.config.loader import (
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from foley.config.logging_factory import (
    build_logging_config,
    configure_logging_from_cli,
)
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

__all__ = [
    "DEFAULT_STYLE",
    "AssetStoreConfig",
    "EngineConfig",
    "EnvReader",
    "FoleyConfig",
    "GeminiConfig",
    "LoggingConfig",
    "PipelineConfig",
    "SynthesisConfig",
    "build_logging_config",
    "configure_logging_from_cli",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
]
