"""Asset production: the hybrid cache/synthesis engine and its cache writer."""

from foley.engine.cache_writer import CacheWriter
from foley.engine.hybrid import (
    DEFAULT_SIMILARITY_THRESHOLD,
    HybridAssetEngine,
    compose_query,
)

__all__ = [
    "DEFAULT_SIMILARITY_THRESHOLD",
    "CacheWriter",
    "HybridAssetEngine",
    "compose_query",
]
