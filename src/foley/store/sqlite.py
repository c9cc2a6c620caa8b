"""Local asset library backed by SQLite.

Vectors are stored as JSON next to the audio blob and ranked by brute-force
cosine similarity, which is adequate for a personal library of a few
thousand clips. Keyword fallback uses case-insensitive LIKE over the stored
description and query.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
import threading
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from foley.core.text_utils import search_terms
from foley.domain.models import AssetCandidate, AudioAsset
from foley.providers.interface import AssetStoreError, VectorIndexUnavailable

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS assets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT NOT NULL,
    query TEXT,
    mime_type TEXT NOT NULL,
    audio BLOB NOT NULL,
    embedding TEXT,
    source TEXT NOT NULL DEFAULT 'synthesis',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_assets_created_at ON assets(created_at);
"""


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors (0.0 for zero vectors)."""
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class SqliteAssetStore:
    """AssetStore implementation over a single SQLite file.

    One connection is shared by the caller and the background cache writer,
    so every statement runs under a lock.
    """

    def __init__(
        self, path: Path | str = MEMORY_PATH, text_match_score: float = 0.75
    ) -> None:
        """Open (and create, if needed) the library.

        Args:
            path: Database file, or ":memory:" for a throwaway library.
            text_match_score: Score reported for keyword-fallback matches.

        Raises:
            AssetStoreError: If the database cannot be opened.
        """
        self._path = (
            MEMORY_PATH if str(path) == MEMORY_PATH else str(Path(path).expanduser())
        )
        self._text_match_score = text_match_score
        self._lock = threading.Lock()

        try:
            if self._path != MEMORY_PATH:
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self._path, timeout=30.0, check_same_thread=False
            )
            if self._path != MEMORY_PATH:
                self._conn.execute("PRAGMA journal_mode = WAL")
                self._conn.execute("PRAGMA synchronous = NORMAL")
            self._conn.execute("PRAGMA busy_timeout = 10000")
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA_SQL)
        except (sqlite3.Error, OSError) as e:
            raise AssetStoreError(f"Cannot open asset library {self._path}: {e}") from e

    @property
    def path(self) -> str:
        return self._path

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    @staticmethod
    def _row_to_asset(row: sqlite3.Row) -> AudioAsset:
        return AudioAsset(
            uri=f"store:{row['id']}",
            mime_type=row["mime_type"],
            data=bytes(row["audio"]),
            description=row["description"],
        )

    def search(self, vector: Sequence[float], limit: int = 1) -> list[AssetCandidate]:
        """Rank stored assets by cosine similarity to ``vector``.

        Raises:
            VectorIndexUnavailable: If ``vector`` is empty.
            AssetStoreError: On database errors.
        """
        if not vector:
            raise VectorIndexUnavailable("Empty query vector")

        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT id, description, mime_type, audio, embedding "
                    "FROM assets WHERE embedding IS NOT NULL"
                ).fetchall()
        except sqlite3.Error as e:
            raise AssetStoreError(f"Vector search failed: {e}") from e

        scored: list[tuple[float, sqlite3.Row]] = []
        for row in rows:
            try:
                stored = json.loads(row["embedding"])
            except json.JSONDecodeError:
                logger.debug("Skipping asset %s with corrupt embedding", row["id"])
                continue
            if len(stored) != len(vector):
                continue
            scored.append((cosine_similarity(vector, stored), row))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            AssetCandidate(
                asset=self._row_to_asset(row),
                score=score,
                description=row["description"],
            )
            for score, row in scored[:limit]
        ]

    def search_text(
        self, keywords: Sequence[str], limit: int = 1
    ) -> list[AssetCandidate]:
        """Match keywords against description and query with LIKE.

        Raises:
            AssetStoreError: On database errors.
        """
        terms = search_terms(keywords)
        if not terms:
            return []

        clauses = " OR ".join(
            "LOWER(description) LIKE ? OR LOWER(COALESCE(query, '')) LIKE ?"
            for _ in terms
        )
        params: list[object] = []
        for term in terms:
            params.extend([f"%{term}%", f"%{term}%"])
        params.append(limit)

        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT id, description, mime_type, audio FROM assets "
                    f"WHERE {clauses} ORDER BY id DESC LIMIT ?",  # nosec B608
                    params,
                ).fetchall()
        except sqlite3.Error as e:
            raise AssetStoreError(f"Text search failed: {e}") from e

        return [
            AssetCandidate(
                asset=self._row_to_asset(row),
                score=self._text_match_score,
                description=row["description"],
            )
            for row in rows
        ]

    def insert(
        self,
        description: str,
        query: str,
        asset: AudioAsset,
        vector: Sequence[float] | None,
    ) -> bool:
        """Store an asset. Returns False (and logs) on failure."""
        if not asset.data:
            logger.warning("Not caching %r: asset has no audio data", description)
            return False

        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO assets "
                    "(description, query, mime_type, audio, embedding, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        description,
                        query,
                        asset.mime_type,
                        asset.data,
                        json.dumps(list(vector)) if vector else None,
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            logger.warning("Failed to cache asset %r: %s", description, e)
            return False
        return True

    def count(self) -> int:
        """Return the number of stored assets."""
        try:
            with self._lock:
                row = self._conn.execute("SELECT COUNT(*) FROM assets").fetchone()
        except sqlite3.Error as e:
            raise AssetStoreError(f"Cannot count assets: {e}") from e
        return int(row[0])
