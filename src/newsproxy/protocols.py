"""Protocol interfaces for swappable components.

The coordinator and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use fake fetchers and the in-memory store
- The SQLite and in-memory stores to be swapped without touching the coordinator
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from newsproxy.models.news import CacheRecord, NewsEntry
    from newsproxy.models.query import QueryDescriptor


class StoreProtocol(Protocol):
    """Interface for the cache record store and archival entry index."""

    async def init(self) -> None: ...

    async def lookup(self, key: str) -> CacheRecord | None: ...

    async def put(
        self,
        key: str,
        entries: Sequence[NewsEntry],
        fetched_at: datetime | None = None,
    ) -> None: ...

    async def index_entries(self, entries: Sequence[NewsEntry]) -> int: ...

    async def get_indexed(self, url: str) -> NewsEntry | None: ...

    async def purge_expired(self) -> int: ...


class FetcherProtocol(Protocol):
    """Interface for the upstream news fetcher."""

    async def fetch(self, query: QueryDescriptor) -> list[NewsEntry]: ...
