"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan) and
reached by every request handler through ``request.app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import aiosqlite
    import httpx

    from newsproxy.config import Settings
    from newsproxy.coordinator import CacheCoordinator
    from newsproxy.protocols import FetcherProtocol, StoreProtocol


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    store: StoreProtocol
    fetcher: FetcherProtocol
    coordinator: CacheCoordinator
    http_client: httpx.AsyncClient | None = None
    # Only set for the sqlite backend; the lifespan closes it on shutdown.
    db: aiosqlite.Connection | None = None
