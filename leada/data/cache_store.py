"""
Leada Coaching Core — Cache Store.

Persistent key-value cache with a per-entry TTL, keyed by
(subject_id, cache_key). Backed by SQLite so cached LLM output survives a
restart. Any storage or serialization failure is logged and behaves as a
miss, so callers stay correct with the cache unavailable.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from leada.data.db import SQLiteDB

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_CACHE_ERRORS = (sqlite3.Error, TypeError, ValueError)


class CACHE_TTL:
    """TTL constants in minutes."""

    RECOMMENDATIONS = 24 * 60
    DASHBOARD_WEEK = 60
    DASHBOARD_MONTH = 6 * 60
    DASHBOARD_LONG = 24 * 60
    PROFILE_SUMMARY = 12 * 60
    TRANSLATION = 7 * 24 * 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stamp(value: datetime) -> str:
    # Fixed precision keeps stored timestamps comparable as strings.
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class CacheStore(SQLiteDB):
    """TTL cache over the `cached_data` table.

    `clock` returns the current aware UTC datetime; tests inject a fake one
    to move time forward.
    """

    def __init__(self, db_path: str | None = None, clock: Clock | None = None) -> None:
        self._clock = clock or _utcnow
        self._pending: set[asyncio.Task] = set()
        super().__init__(db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cached_data (
                    subject_id  TEXT NOT NULL,
                    cache_key   TEXT NOT NULL,
                    data        TEXT NOT NULL,
                    expires_at  TEXT NOT NULL,
                    updated_at  TEXT NOT NULL,
                    PRIMARY KEY (subject_id, cache_key)
                )
            """)
        logger.debug("Cache table initialized at %s", self._db_path)

    def get(self, subject_id: str, cache_key: str) -> Any | None:
        """Return the cached value, or None on miss.

        An expired row is deleted as a side effect of the read.
        """
        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    SELECT data, expires_at FROM cached_data
                    WHERE subject_id = ? AND cache_key = ?
                    """,
                    (subject_id, cache_key),
                ).fetchone()
                if row is None:
                    logger.debug("Cache miss: %s/%s", subject_id, cache_key)
                    return None

                if self._clock() > datetime.fromisoformat(row["expires_at"]):
                    conn.execute(
                        "DELETE FROM cached_data WHERE subject_id = ? AND cache_key = ?",
                        (subject_id, cache_key),
                    )
                    logger.debug("Cache expired: %s/%s", subject_id, cache_key)
                    return None

            logger.debug("Cache hit: %s/%s", subject_id, cache_key)
            return json.loads(row["data"])
        except _CACHE_ERRORS as exc:
            logger.warning("Cache read failed for %s/%s: %s", subject_id, cache_key, exc)
            return None

    def set(self, subject_id: str, cache_key: str, value: Any, ttl_minutes: int) -> None:
        """Upsert a value. Last writer wins. Failures are logged, never raised."""
        try:
            now = self._clock()
            payload = json.dumps(value, ensure_ascii=False)
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO cached_data (subject_id, cache_key, data, expires_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT (subject_id, cache_key) DO UPDATE SET
                        data = excluded.data,
                        expires_at = excluded.expires_at,
                        updated_at = excluded.updated_at
                    """,
                    (
                        subject_id, cache_key, payload,
                        _stamp(now + timedelta(minutes=ttl_minutes)), _stamp(now),
                    ),
                )
            logger.debug("Cache set: %s/%s (ttl %d min)", subject_id, cache_key, ttl_minutes)
        except _CACHE_ERRORS as exc:
            logger.error("Cache write failed for %s/%s: %s", subject_id, cache_key, exc)

    def delete(self, subject_id: str, cache_key: str | None = None) -> None:
        """Delete one entry, or every entry of the subject when no key is given."""
        try:
            with self._connect() as conn:
                if cache_key is None:
                    conn.execute("DELETE FROM cached_data WHERE subject_id = ?", (subject_id,))
                else:
                    conn.execute(
                        "DELETE FROM cached_data WHERE subject_id = ? AND cache_key = ?",
                        (subject_id, cache_key),
                    )
        except sqlite3.Error as exc:
            logger.error("Cache delete failed for %s/%s: %s", subject_id, cache_key, exc)

    def delete_by_prefix(self, subject_id: str, prefix: str) -> int:
        """Delete every entry of the subject whose key starts with `prefix`."""
        try:
            with self._connect() as conn:
                # substr instead of LIKE: '_' in keys must not act as a wildcard
                cursor = conn.execute(
                    """
                    DELETE FROM cached_data
                    WHERE subject_id = ? AND substr(cache_key, 1, ?) = ?
                    """,
                    (subject_id, len(prefix), prefix),
                )
            logger.info(
                "Cache invalidated: %s/%s* (%d entries)", subject_id, prefix, cursor.rowcount,
            )
            return cursor.rowcount
        except sqlite3.Error as exc:
            logger.error("Cache prefix delete failed for %s/%s: %s", subject_id, prefix, exc)
            return 0

    def cleanup_expired(self) -> int:
        """Remove every expired row. Returns the number of rows removed."""
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM cached_data WHERE expires_at < ?", (_stamp(self._clock()),),
                )
            logger.info("Cache cleanup removed %d expired entries", cursor.rowcount)
            return cursor.rowcount
        except sqlite3.Error as exc:
            logger.error("Cache cleanup failed: %s", exc)
            return 0

    async def get_or_compute(
        self,
        subject_id: str,
        cache_key: str,
        compute_fn: Callable[[], Awaitable[Any]],
        ttl_minutes: int,
    ) -> Any:
        """Cache-aside lookup.

        On a miss, awaits `compute_fn()` and returns its result at once; the
        write runs as a background task that is not awaited here and may be
        lost if the process dies first. A None result is returned but not
        stored. Concurrent misses for the same key may both compute.
        """
        cached = self.get(subject_id, cache_key)
        if cached is not None:
            return cached

        value = await compute_fn()
        if value is None:
            return None

        task = asyncio.create_task(
            asyncio.to_thread(self.set, subject_id, cache_key, value, ttl_minutes)
        )
        self._pending.add(task)
        task.add_done_callback(self._write_done)
        return value

    def _write_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background cache write failed: %s", exc)

    async def flush(self) -> None:
        """Wait for all outstanding background writes."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
