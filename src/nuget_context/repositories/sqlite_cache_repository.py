"""SQLite implementation of CacheStore.

This repository keeps every cached registry response in a single SQLite
file. It's the default implementation and satisfies the CacheStore protocol.
"""

import asyncio
import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from nuget_context.config import settings
from nuget_context.entities import CacheEntryEntity
from nuget_context.errors import CacheStorageError
from nuget_context.protocols import PayloadCodec

logger = logging.getLogger(__name__)

R = TypeVar("R")
T = TypeVar("T")

SQLITE_BUSY = 5
SQLITE_LOCKED = 6

MAX_RETRY_WAIT_SECONDS = 2.0


def is_contention_error(exc: BaseException) -> bool:
    """Check if an exception is SQLite lock contention worth retrying."""
    if not isinstance(exc, sqlite3.OperationalError):
        return False

    code = getattr(exc, "sqlite_errorcode", None)
    if code is not None:
        # extended codes (e.g. SQLITE_BUSY_SNAPSHOT) keep the primary code in the low byte
        return (code & 0xFF) in (SQLITE_BUSY, SQLITE_LOCKED)

    message = str(exc).lower()
    return "locked" in message or "busy" in message


class SqliteCacheRepository:
    """SQLite implementation of a TTL key/value cache.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    Storage details:
    - One table keyed by cache key, with an index on expiry for sweeps
    - WAL journal mode, so readers and the single writer do not block each other
    - One long-lived connection shared by all callers; blocking calls run on
      worker threads so the event loop never waits on disk I/O
    - Statements on that connection are serialized by a lock
    - BUSY/LOCKED errors are retried with exponential backoff
    """

    TABLE_NAME = "cache_entries"

    def __init__(
        self,
        database_path: str | None = None,
        max_retry_attempts: int | None = None,
        retry_delay: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the SQLite cache repository.

        Args:
            database_path: Path to the database file, or ":memory:". Defaults to settings.
            max_retry_attempts: Attempts per operation under lock contention. Defaults to settings.
            retry_delay: First backoff delay in seconds, doubled on every retry. Defaults to settings.
            clock: Returns the current Unix time in seconds. Defaults to time.time.
        """
        self._database_path = database_path or settings.cache_database_path
        self._max_attempts = max_retry_attempts or settings.cache_max_retry_attempts
        self._retry_delay = (
            retry_delay if retry_delay is not None else settings.cache_retry_delay_ms / 1000
        )
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._conn = self._connect()

    @classmethod
    def create(
        cls,
        database_path: str | None = None,
        max_retry_attempts: int | None = None,
    ) -> "SqliteCacheRepository":
        """Factory method to create SqliteCacheRepository with defaults.

        Args:
            database_path: Database file path. If None, uses settings.
            max_retry_attempts: Retry budget for contention. If None, uses settings.

        Returns:
            Configured SqliteCacheRepository
        """
        return cls(database_path=database_path, max_retry_attempts=max_retry_attempts)

    def _connect(self) -> sqlite3.Connection:
        """Open the connection and ensure the schema exists."""
        if self._database_path != ":memory:":
            directory = Path(self._database_path).parent
            if not directory.exists():
                directory.mkdir(parents=True, exist_ok=True)
                logger.info("Created cache directory: %s", directory)

        try:
            conn = sqlite3.connect(
                self._database_path,
                check_same_thread=False,
                isolation_level=None,  # autocommit: every statement is its own transaction
                timeout=1.0,
            )
        except sqlite3.Error as e:
            raise CacheStorageError(f"Failed to open SQLite cache at {self._database_path}: {e}") from e

        logger.info("Opened SQLite connection to %s", self._database_path)

        for pragma in ("PRAGMA journal_mode=WAL", "PRAGMA synchronous=NORMAL"):
            try:
                conn.execute(pragma)
            except sqlite3.Error as e:
                logger.error("Failed to apply %s: %s", pragma, e)

        try:
            conn.executescript(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TABLE_NAME} (
                    cache_key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    expires_at INTEGER NOT NULL
                );
                CREATE INDEX IF NOT EXISTS ix_{self.TABLE_NAME}_expires_at
                    ON {self.TABLE_NAME}(expires_at);
                """
            )
        except sqlite3.Error as e:
            conn.close()
            raise CacheStorageError(f"Failed to initialize SQLite cache schema: {e}") from e

        logger.info("Initialized SQLite cache database schema")
        return conn

    def _now(self) -> int:
        return int(self._clock())

    async def _execute(self, operation: str, func: Callable[[sqlite3.Connection], R]) -> R:
        """Run a blocking database call on a worker thread with contention retries.

        The callback runs under the repository lock, so a statement and the
        connection-wide counters it leaves behind (rowcount) are read together.

        Args:
            operation: Name used in log and error messages
            func: Callable receiving the connection

        Returns:
            Whatever func returns

        Raises:
            CacheStorageError: If retries are exhausted or SQLite reports any other error
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_delay, max=MAX_RETRY_WAIT_SECONDS),
            retry=retry_if_exception(is_contention_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )

        def _locked(conn: sqlite3.Connection) -> R:
            with self._lock:
                return func(conn)

        try:
            async for attempt in retrying:
                with attempt:
                    return await asyncio.to_thread(_locked, self._conn)
        except RetryError as e:
            logger.error(
                "SQLite %s failed after %d attempts due to BUSY/LOCKED errors",
                operation,
                self._max_attempts,
            )
            raise CacheStorageError(
                f"SQLite {operation} failed after {self._max_attempts} attempts due to contention",
                transient=True,
            ) from e.last_attempt.exception()
        except sqlite3.Error as e:
            logger.error("Error executing SQLite %s: %s", operation, e)
            raise CacheStorageError(f"SQLite {operation} failed: {e}") from e

        raise AssertionError("unreachable")

    async def get(self, key: str) -> str | None:
        """Read a payload if a non-expired entry exists.

        Args:
            key: The cache key

        Returns:
            The stored payload, or None on a miss
        """
        now = self._now()

        def _select(conn: sqlite3.Connection) -> str | None:
            row = conn.execute(
                f"SELECT payload FROM {self.TABLE_NAME} WHERE cache_key = ? AND expires_at > ?",
                (key, now),
            ).fetchone()
            return row[0] if row else None

        payload = await self._execute("get", _select)
        if payload is None:
            logger.debug("Cache miss for key: %s", key)
        else:
            logger.debug("Cache hit for key: %s", key)
        return payload

    async def get_value(self, key: str, codec: PayloadCodec[T]) -> T | None:
        """Read and decode a payload, purging entries that fail to decode.

        Args:
            key: The cache key
            codec: Codec for the expected value type

        Returns:
            The decoded value, or None on a miss
        """
        payload = await self.get(key)
        if payload is None:
            return None

        try:
            return codec.decode(payload)
        except ValueError as e:
            logger.error("Failed to decode cached payload for key %s, removing invalid entry: %s", key, e)
            await self.remove(key)
            return None

    async def get_entry(self, key: str) -> CacheEntryEntity | None:
        """Read the raw row for a key, expired or not."""

        def _select(conn: sqlite3.Connection) -> CacheEntryEntity | None:
            row = conn.execute(
                f"SELECT cache_key, payload, expires_at FROM {self.TABLE_NAME} WHERE cache_key = ?",
                (key,),
            ).fetchone()
            return CacheEntryEntity(key=row[0], payload=row[1], expires_at=row[2]) if row else None

        return await self._execute("get_entry", _select)

    async def set(self, key: str, payload: str, ttl_seconds: float) -> None:
        """Insert or overwrite an entry.

        Args:
            key: The cache key
            payload: Serialized value
            ttl_seconds: Lifetime from now in seconds
        """
        entry = CacheEntryEntity(key=key, payload=payload, expires_at=int(self._clock() + ttl_seconds))

        def _upsert(conn: sqlite3.Connection) -> None:
            conn.execute(
                f"INSERT OR REPLACE INTO {self.TABLE_NAME} (cache_key, payload, expires_at) VALUES (?, ?, ?)",
                (entry.key, entry.payload, entry.expires_at),
            )

        await self._execute("set", _upsert)
        logger.debug("Set cache entry for key: %s (expires at %d)", key, entry.expires_at)

    async def set_value(self, key: str, value: T, codec: PayloadCodec[T], ttl_seconds: float) -> None:
        """Encode a value and store it."""
        await self.set(key, codec.encode(value), ttl_seconds)

    async def remove(self, key: str) -> None:
        """Delete a single entry. Missing keys are ignored."""

        def _delete(conn: sqlite3.Connection) -> int:
            return conn.execute(f"DELETE FROM {self.TABLE_NAME} WHERE cache_key = ?", (key,)).rowcount

        rows = await self._execute("remove", _delete)
        logger.debug("Removed cache entry for key: %s (rows affected: %d)", key, rows)

    async def sweep_expired(self) -> int:
        """Delete every expired entry with a single statement.

        Returns:
            Number of entries removed
        """
        now = self._now()

        def _delete_expired(conn: sqlite3.Connection) -> int:
            return conn.execute(
                f"DELETE FROM {self.TABLE_NAME} WHERE expires_at <= ?",
                (now,),
            ).rowcount

        removed = await self._execute("sweep_expired", _delete_expired)
        if removed > 0:
            logger.info("Removed %d expired cache entries", removed)
        else:
            logger.debug("No expired cache entries found to remove")
        return removed

    async def count(self) -> int:
        """Count stored rows, including expired rows not yet swept."""
        return await self._execute(
            "count",
            lambda conn: conn.execute(f"SELECT COUNT(*) FROM {self.TABLE_NAME}").fetchone()[0],
        )

    async def keys(self) -> list[str]:
        """List stored keys in key order, including expired rows not yet swept."""
        return await self._execute(
            "keys",
            lambda conn: [
                row[0]
                for row in conn.execute(f"SELECT cache_key FROM {self.TABLE_NAME} ORDER BY cache_key")
            ],
        )

    async def health_check(self) -> bool:
        """Check if the database answers a trivial query.

        Returns:
            True if healthy, False otherwise
        """
        try:
            await self._execute("health_check", lambda conn: conn.execute("SELECT 1").fetchone())
            return True
        except CacheStorageError:
            return False

    async def get_stats(self) -> dict:
        """Get repository statistics.

        Returns:
            Dictionary with stats
        """
        now = self._now()
        live = await self._execute(
            "stats",
            lambda conn: conn.execute(
                f"SELECT COUNT(*) FROM {self.TABLE_NAME} WHERE expires_at > ?", (now,)
            ).fetchone()[0],
        )
        total = await self.count()
        return {
            "database_path": self._database_path,
            "total_entries": total,
            "live_entries": live,
            "expired_entries": total - live,
            "max_retry_attempts": self._max_attempts,
        }

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()
        logger.info("Closed SQLite connection")

    @property
    def database_path(self) -> str:
        """Get the database file path."""
        return self._database_path
