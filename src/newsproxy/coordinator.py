"""Cache coordinator: the single entry point for resolving a news request.

normalize → store lookup → (hit) return cached entries with their age
                         → (miss) fetch → put → index → return with age 0

Upstream failures are absorbed into an empty ``"unavailable"`` result; they are
never retried. Store failures propagate, since the cache contract cannot be
kept without the store.

Concurrent misses for the same key each call upstream and the last write
wins, unless ``single_flight`` is enabled, in which case they share the first
caller's fetch.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from newsproxy.errors import UPSTREAM_ERROR_CODES, NewsProxyError
from newsproxy.models.news import ResolvedNews
from newsproxy.normalizer import DEFAULT_PAGE_SIZE, normalize
from newsproxy.store import Clock, utc_now

if TYPE_CHECKING:
    from collections.abc import Mapping

    from newsproxy.models.query import QueryDescriptor
    from newsproxy.protocols import FetcherProtocol, StoreProtocol


class CacheCoordinator:
    def __init__(
        self,
        store: StoreProtocol,
        fetcher: FetcherProtocol,
        *,
        clock: Clock = utc_now,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        single_flight: bool = False,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._clock = clock
        self._default_page_size = default_page_size
        self._single_flight = single_flight
        self._in_flight: dict[str, asyncio.Task[ResolvedNews]] = {}

    async def resolve(self, raw: Mapping[str, Any] | None) -> ResolvedNews:
        """Resolve request params to a result set.

        Raises NewsProxyError for invalid params (INVALID_CATEGORY,
        INVALID_INPUT) and store failures (STORE_UNAVAILABLE).
        """
        query = normalize(raw, default_page_size=self._default_page_size)
        key = query.cache_key()
        log = structlog.get_logger().bind(key=key)

        record = await self._store.lookup(key)
        if record is not None:
            age_millis = record.age_millis(self._clock())
            log.info("cache_hit", age_millis=age_millis, entry_count=len(record.entries))
            return ResolvedNews(entries=record.entries, age_millis=age_millis, source="cache")

        if not self._single_flight:
            return await self._fetch_and_store(query, key)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(query, key))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            log.info("cache_miss_joined_in_flight")
        # Shielded: one caller disconnecting must not cancel the shared fetch.
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[ResolvedNews]) -> None:
        if not task.cancelled():
            # Marks the exception retrieved when every waiter was cancelled.
            task.exception()
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _fetch_and_store(self, query: QueryDescriptor, key: str) -> ResolvedNews:
        log = structlog.get_logger().bind(key=key)
        log.info("cache_miss_fetching")
        try:
            entries = await self._fetcher.fetch(query)
        except NewsProxyError as exc:
            if exc.code not in UPSTREAM_ERROR_CODES:
                raise
            log.warning("upstream_unavailable", code=exc.code, message=exc.message)
            return ResolvedNews(entries=[], age_millis=0, source="unavailable")

        await self._store.put(key, entries)
        archived = await self._store.index_entries(entries)
        log.info("cache_populated", entry_count=len(entries), archived=archived)
        return ResolvedNews(entries=entries, age_millis=0, source="upstream")
