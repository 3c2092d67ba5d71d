"""Language-detection cache backed by a local SQLite database."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# (filename, content_hash)
CacheKey = tuple[str, str]

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS language_cache (
    filename TEXT NOT NULL,
    content_hash TEXT NOT NULL,
    detected_language TEXT NOT NULL,
    confidence REAL NOT NULL,
    recorded_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    PRIMARY KEY (filename, content_hash)
);
CREATE INDEX IF NOT EXISTS idx_language_cache_expires ON language_cache(expires_at);
"""

# SQLite caps bound parameters per statement; two per key.
_MAX_KEYS_PER_QUERY = 400


class LanguageCacheEntry(BaseModel):
    """Result of one language detection for a specific file content."""

    detected_language: str
    confidence: float = Field(ge=0.0, le=1.0)
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class LanguageCache:
    """Persistent (filename, content_hash) -> detection store with TTL.

    An entry only counts as "already translated" when its confidence is
    above ``min_confidence`` and its language equals the target. Any
    backend error is logged and treated as a miss; the cache never fails
    a run.
    """

    def __init__(
        self,
        db_path: str = ".docs-translator/cache.db",
        ttl_seconds: int = 3600,
        min_confidence: float = 0.8,
    ) -> None:
        path = Path(db_path)
        if db_path != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(path) if db_path != ":memory:" else db_path
        self.ttl_seconds = ttl_seconds
        self.min_confidence = min_confidence
        self._conn = sqlite3.connect(
            self.db_path, isolation_level=None, timeout=5, check_same_thread=False
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    # -- helpers ---------------------------------------------------------------

    def _now(self) -> datetime:
        return datetime.now(UTC)

    def is_translated_hit(self, entry: LanguageCacheEntry | None, target_language: str) -> bool:
        """Whether a cached entry proves the file is already in the target language."""
        if entry is None:
            return False
        return (
            entry.confidence > self.min_confidence
            and entry.detected_language == target_language
        )

    # -- cache contract --------------------------------------------------------

    def get_many(self, keys: Iterable[CacheKey]) -> dict[CacheKey, LanguageCacheEntry]:
        """Return unexpired entries for the given keys. Missing keys are absent."""
        wanted = list(dict.fromkeys(keys))
        found: dict[CacheKey, LanguageCacheEntry] = {}
        now = self._now().isoformat()
        try:
            for start in range(0, len(wanted), _MAX_KEYS_PER_QUERY):
                batch = wanted[start : start + _MAX_KEYS_PER_QUERY]
                clause = " OR ".join(["(filename = ? AND content_hash = ?)"] * len(batch))
                params: list[str] = [part for key in batch for part in key]
                rows = self._conn.execute(
                    "SELECT filename, content_hash, detected_language, confidence, recorded_at "
                    f"FROM language_cache WHERE expires_at > ? AND ({clause})",
                    [now, *params],
                ).fetchall()
                for filename, content_hash, language, confidence, recorded_at in rows:
                    found[(filename, content_hash)] = LanguageCacheEntry(
                        detected_language=language,
                        confidence=confidence,
                        recorded_at=datetime.fromisoformat(recorded_at),
                    )
        except sqlite3.Error as e:
            logger.warning("Language cache lookup failed, treating as empty: %s", e)
            return {}
        return found

    def set(self, key: CacheKey, entry: LanguageCacheEntry, ttl: int | None = None) -> None:
        """Store an entry. Last write wins for a key."""
        filename, content_hash = key
        expires_at = entry.recorded_at + timedelta(seconds=ttl if ttl is not None else self.ttl_seconds)
        try:
            self._conn.execute(
                "INSERT OR REPLACE INTO language_cache "
                "(filename, content_hash, detected_language, confidence, recorded_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    filename,
                    content_hash,
                    entry.detected_language,
                    entry.confidence,
                    entry.recorded_at.isoformat(),
                    expires_at.isoformat(),
                ),
            )
        except sqlite3.Error as e:
            logger.warning("Language cache write failed for %s: %s", filename, e)

    def invalidate(self, keys: Iterable[CacheKey]) -> int:
        """Remove entries for the given keys. Returns the number removed."""
        removed = 0
        try:
            for filename, content_hash in keys:
                cursor = self._conn.execute(
                    "DELETE FROM language_cache WHERE filename = ? AND content_hash = ?",
                    (filename, content_hash),
                )
                removed += cursor.rowcount
        except sqlite3.Error as e:
            logger.warning("Language cache invalidation failed: %s", e)
        return removed

    # -- extras ----------------------------------------------------------------

    def purge_expired(self) -> int:
        cursor = self._conn.execute(
            "DELETE FROM language_cache WHERE expires_at <= ?", (self._now().isoformat(),)
        )
        return cursor.rowcount

    def clear(self) -> int:
        cursor = self._conn.execute("DELETE FROM language_cache")
        return cursor.rowcount

    def stats(self) -> dict[str, int]:
        """Count entries, split by expiry and by detected language."""
        now = self._now().isoformat()
        total, expired = self._conn.execute(
            "SELECT COUNT(*), COALESCE(SUM(expires_at <= ?), 0) FROM language_cache", (now,)
        ).fetchone()
        counts = {"total": total, "expired": expired, "active": total - expired}
        rows = self._conn.execute(
            "SELECT detected_language, COUNT(*) FROM language_cache "
            "WHERE expires_at > ? GROUP BY detected_language",
            (now,),
        ).fetchall()
        for language, count in rows:
            counts[f"language:{language}"] = count
        return counts

    def close(self) -> None:
        self._conn.close()
