"""Cache record store and archival entry index.

Two implementations of StoreProtocol:

- ``SqliteStore``: durable, backed by one shared ``aiosqlite`` connection.
- ``MemoryStore``: per-process dicts, lost on restart.

Both read time from an injectable clock and treat a record as fresh only while
``now - fetched_at < ttl``. Expired records are deleted on lookup and by
``purge_expired`` (driven by the cleanup scheduler).

Unlike a best-effort cache, the store is load-bearing: without it the TTL
contract cannot be honoured, so every ``aiosqlite.Error`` is logged and
re-raised as ``NewsProxyError(STORE_UNAVAILABLE)``.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import suppress
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from pydantic import TypeAdapter, ValidationError

from newsproxy.errors import ErrorCode, NewsProxyError
from newsproxy.models.news import CacheRecord, NewsEntry, NewsSource

if TYPE_CHECKING:
    from collections.abc import Sequence

log = structlog.get_logger()

Clock = Callable[[], datetime]

DEFAULT_TTL = timedelta(minutes=30)

_ENTRIES = TypeAdapter(list[NewsEntry])

_CREATE_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS cache_records (
    key           TEXT PRIMARY KEY,
    entries       TEXT NOT NULL,
    fetched_at_ms INTEGER NOT NULL
)
"""

_CREATE_ENTRIES_TABLE = """
CREATE TABLE IF NOT EXISTS news_entries (
    url           TEXT PRIMARY KEY,
    title         TEXT NOT NULL,
    source_id     TEXT,
    source_name   TEXT NOT NULL,
    url_to_image  TEXT,
    published_at  TEXT NOT NULL,
    author        TEXT NOT NULL,
    description   TEXT NOT NULL,
    content       TEXT NOT NULL,
    first_seen_ms INTEGER NOT NULL
)
"""

_CREATE_RECORDS_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_records_fetched ON cache_records(fetched_at_ms)"
)

# A write never moves fetched_at backwards for a key.
_UPSERT_RECORD = """
INSERT INTO cache_records (key, entries, fetched_at_ms) VALUES (?, ?, ?)
ON CONFLICT(key) DO UPDATE SET
    entries = excluded.entries,
    fetched_at_ms = excluded.fetched_at_ms
WHERE excluded.fetched_at_ms >= cache_records.fetched_at_ms
"""

_INSERT_ENTRY = """
INSERT OR IGNORE INTO news_entries
(url, title, source_id, source_name, url_to_image, published_at,
 author, description, content, first_seen_ms)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def utc_now() -> datetime:
    return datetime.now(UTC)


def _to_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def _store_error(operation: str, exc: Exception) -> NewsProxyError:
    return NewsProxyError(
        code=ErrorCode.STORE_UNAVAILABLE,
        message=f"Cache store failed during {operation}: {exc}",
        suggestion="Check that the cache database is reachable and writable.",
        recoverable=True,
    )


class SqliteStore:
    """SQLite-backed store implementing StoreProtocol.

    The connection is owned by the caller (the server lifespan), mirroring
    how the shared httpx client is handled.
    """

    def __init__(
        self,
        db: aiosqlite.Connection,
        *,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utc_now,
    ) -> None:
        self._db = db
        self._ttl_ms = int(ttl.total_seconds() * 1000)
        self._clock = clock

    async def init(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        try:
            await self._db.execute("PRAGMA journal_mode = WAL")
            await self._db.execute(_CREATE_RECORDS_TABLE)
            await self._db.execute(_CREATE_ENTRIES_TABLE)
            await self._db.execute(_CREATE_RECORDS_INDEX)
            await self._db.commit()
        except aiosqlite.Error as exc:
            log.error("store_error", operation="init", exc_info=True)
            raise _store_error("init", exc) from exc

    # ------------------------------------------------------------------
    # Cache records
    # ------------------------------------------------------------------

    async def lookup(self, key: str) -> CacheRecord | None:
        """Return the record for ``key`` if still fresh, else ``None``."""
        try:
            cursor = await self._db.execute(
                "SELECT entries, fetched_at_ms FROM cache_records WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            entries_json, fetched_at_ms = row
            if _to_ms(self._clock()) - fetched_at_ms >= self._ttl_ms:
                # Guard on fetched_at so a concurrent fresh put is not deleted.
                await self._db.execute(
                    "DELETE FROM cache_records WHERE key = ? AND fetched_at_ms = ?",
                    (key, fetched_at_ms),
                )
                await self._db.commit()
                log.debug("store_record_expired", key=key)
                return None

            return CacheRecord(
                key=key,
                entries=_ENTRIES.validate_json(entries_json),
                fetched_at=_from_ms(fetched_at_ms),
            )
        except aiosqlite.Error as exc:
            log.error("store_error", operation="lookup", key=key, exc_info=True)
            raise _store_error("lookup", exc) from exc
        except ValidationError as exc:
            log.error("store_corrupt_record", key=key, error_count=exc.error_count())
            raise _store_error("lookup", exc) from exc

    async def put(
        self,
        key: str,
        entries: Sequence[NewsEntry],
        fetched_at: datetime | None = None,
    ) -> None:
        """Replace the record for ``key`` wholesale."""
        fetched_at = fetched_at or self._clock()
        try:
            await self._db.execute(
                _UPSERT_RECORD,
                (key, _ENTRIES.dump_json(list(entries)).decode(), _to_ms(fetched_at)),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            with suppress(aiosqlite.Error):
                await self._db.rollback()
            log.error("store_error", operation="put", key=key, exc_info=True)
            raise _store_error("put", exc) from exc

    # ------------------------------------------------------------------
    # Archival index
    # ------------------------------------------------------------------

    async def index_entries(self, entries: Sequence[NewsEntry]) -> int:
        """Archive entries whose url has not been seen. Returns the insert count."""
        first_seen_ms = _to_ms(self._clock())
        inserted = 0
        try:
            for entry in entries:
                cursor = await self._db.execute(
                    _INSERT_ENTRY,
                    (
                        entry.url,
                        entry.title,
                        entry.source.id,
                        entry.source.name,
                        entry.url_to_image,
                        entry.published_at,
                        entry.author,
                        entry.description,
                        entry.content,
                        first_seen_ms,
                    ),
                )
                inserted += cursor.rowcount
            await self._db.commit()
        except aiosqlite.Error as exc:
            # Discard a partial batch so the next commit on this connection skips it.
            with suppress(aiosqlite.Error):
                await self._db.rollback()
            log.error("store_error", operation="index_entries", exc_info=True)
            raise _store_error("index_entries", exc) from exc
        return inserted

    async def get_indexed(self, url: str) -> NewsEntry | None:
        try:
            cursor = await self._db.execute(
                "SELECT url, title, source_id, source_name, url_to_image, published_at, "
                "author, description, content FROM news_entries WHERE url = ?",
                (url,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            log.error("store_error", operation="get_indexed", url=url, exc_info=True)
            raise _store_error("get_indexed", exc) from exc
        if row is None:
            return None
        return NewsEntry(
            url=row[0],
            title=row[1],
            source=NewsSource(id=row[2], name=row[3]),
            url_to_image=row[4],
            published_at=row[5],
            author=row[6],
            description=row[7],
            content=row[8],
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def purge_expired(self) -> int:
        """Delete every record at or past its TTL. Returns the number removed."""
        cutoff_ms = _to_ms(self._clock()) - self._ttl_ms
        try:
            cursor = await self._db.execute(
                "DELETE FROM cache_records WHERE fetched_at_ms <= ?", (cutoff_ms,)
            )
            deleted = cursor.rowcount
            await self._db.commit()
        except aiosqlite.Error as exc:
            log.error("store_error", operation="purge_expired", exc_info=True)
            raise _store_error("purge_expired", exc) from exc
        log.info("store_cleanup_complete", records_deleted=deleted)
        return deleted


class MemoryStore:
    """In-process store implementing StoreProtocol. Nothing survives a restart.

    No method awaits between reading and writing a dict, so every operation is
    atomic with respect to other asyncio tasks.
    """

    def __init__(self, *, ttl: timedelta = DEFAULT_TTL, clock: Clock = utc_now) -> None:
        self._ttl = ttl
        self._clock = clock
        self._records: dict[str, CacheRecord] = {}
        self._entries: dict[str, NewsEntry] = {}

    async def init(self) -> None:
        return None

    def _expired(self, record: CacheRecord) -> bool:
        return self._clock() - record.fetched_at >= self._ttl

    async def lookup(self, key: str) -> CacheRecord | None:
        record = self._records.get(key)
        if record is None:
            return None
        if self._expired(record):
            del self._records[key]
            log.debug("store_record_expired", key=key)
            return None
        return record

    async def put(
        self,
        key: str,
        entries: Sequence[NewsEntry],
        fetched_at: datetime | None = None,
    ) -> None:
        fetched_at = fetched_at or self._clock()
        current = self._records.get(key)
        if current is not None and current.fetched_at > fetched_at:
            return
        self._records[key] = CacheRecord(key=key, entries=list(entries), fetched_at=fetched_at)

    async def index_entries(self, entries: Sequence[NewsEntry]) -> int:
        inserted = 0
        for entry in entries:
            if entry.url not in self._entries:
                self._entries[entry.url] = entry
                inserted += 1
        return inserted

    async def get_indexed(self, url: str) -> NewsEntry | None:
        return self._entries.get(url)

    async def purge_expired(self) -> int:
        expired = [key for key, record in self._records.items() if self._expired(record)]
        for key in expired:
            del self._records[key]
        log.info("store_cleanup_complete", records_deleted=len(expired))
        return len(expired)
