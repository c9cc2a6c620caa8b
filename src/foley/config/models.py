"""Configuration models for Foley.

Each section of ~/.foley/config.toml maps to one dataclass here. Values are
validated in __post_init__ so a bad file or environment variable fails at
load time rather than mid-run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_STYLE = "Cinematic Realism"


@dataclass
class GeminiConfig:
    """Settings for the Gemini-backed spotter, director, reviewer and embedder."""

    api_key: str | None = None
    """API key; None means the Gemini providers are unavailable."""

    model: str = "gemini-3-flash-preview"
    """Model used for detection, direction and review."""

    embedding_model: str = "text-embedding-004"
    """Model used for text embeddings."""

    timeout_seconds: int = 120
    """Per-request timeout in seconds (1-600)."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.model.strip():
            raise ValueError("model must not be empty")
        if not self.embedding_model.strip():
            raise ValueError("embedding_model must not be empty")
        if not 1 <= self.timeout_seconds <= 600:
            raise ValueError("timeout_seconds must be between 1 and 600")

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


@dataclass
class SynthesisConfig:
    """Settings for the ElevenLabs sound-generation provider."""

    api_key: str | None = None
    url: str = "https://api.elevenlabs.io"
    model_id: str = "eleven_text_to_sound_v2"
    duration_seconds: float = 3.0
    prompt_influence: float = 0.4
    timeout_seconds: int = 60

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.url.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        if not 0.5 <= self.duration_seconds <= 22.0:
            raise ValueError("duration_seconds must be between 0.5 and 22")
        if not 0.0 <= self.prompt_influence <= 1.0:
            raise ValueError("prompt_influence must be between 0 and 1")
        if not 1 <= self.timeout_seconds <= 300:
            raise ValueError("Timeout must be between 1 and 300 seconds")


@dataclass
class AssetStoreConfig:
    """Settings for the asset library behind the semantic cache."""

    backend: str = "sqlite"
    """One of: sqlite (local file), http (library service), none."""

    path: Path | None = None
    """SQLite library path. None uses <data_dir>/library.db."""

    url: str | None = None
    """Base URL of the library service when backend is http."""

    text_match_score: float = 0.75
    """Synthetic score assigned to keyword-fallback matches."""

    search_limit: int = 1
    """Candidates requested per search."""

    timeout_seconds: int = 10

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_backends = {"sqlite", "http", "none"}
        if self.backend.lower() not in valid_backends:
            raise ValueError(
                f"backend must be one of {valid_backends}, got {self.backend}"
            )
        if self.backend.lower() == "http":
            if not self.url:
                raise ValueError("url is required when backend is http")
            if not self.url.startswith(("http://", "https://")):
                raise ValueError("URL must start with http:// or https://")
        if not 0.0 <= self.text_match_score <= 1.0:
            raise ValueError("text_match_score must be between 0 and 1")
        if self.search_limit < 1:
            raise ValueError("search_limit must be at least 1")
        if not 1 <= self.timeout_seconds <= 300:
            raise ValueError("Timeout must be between 1 and 300 seconds")


@dataclass
class EngineConfig:
    """Hybrid asset engine policy."""

    similarity_threshold: float = 0.85
    """A library match is reused only when its score exceeds this value."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be between 0 and 1")


@dataclass
class PipelineConfig:
    """Orchestrator policy."""

    max_regeneration_attempts: int = 2
    max_events: int = 20
    default_style: str = DEFAULT_STYLE

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_regeneration_attempts < 0:
            raise ValueError("max_regeneration_attempts must be non-negative")
        if self.max_events < 1:
            raise ValueError("max_events must be at least 1")
        if not self.default_style.strip():
            raise ValueError("default_style must not be empty")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class FoleyConfig:
    """Main configuration container for Foley."""

    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    store: AssetStoreConfig = field(default_factory=AssetStoreConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    data_dir: Path = field(default_factory=lambda: Path.home() / ".foley")

    @property
    def library_path(self) -> Path:
        """Return the effective SQLite library path."""
        return self.store.path or (self.data_dir / "library.db")
