"""Integration test fixtures.

Provides a fully wired AppState (in-memory SQLite store, real Fetcher over an
httpx client mocked with respx, shared fake clock) and an ASGI client for the
Starlette app.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import httpx
import pytest

from newsproxy.config import Settings
from newsproxy.coordinator import CacheCoordinator
from newsproxy.fetcher import Fetcher
from newsproxy.server import create_app
from newsproxy.state import AppState
from newsproxy.store import SqliteStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from tests.conftest import FakeClock

UPSTREAM_BASE_URL = "https://bing.test/v7.0"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        server={"cors_origins": ["http://localhost:3000"], "cors_methods": ["GET", "POST"]},
        upstream={"base_url": UPSTREAM_BASE_URL, "api_key": "integration-key"},
    )


@pytest.fixture()
async def app_state(settings: Settings, clock: FakeClock) -> AsyncGenerator[AppState, None]:
    """Full AppState wired the same way the lifespan wires it."""
    async with aiosqlite.connect(":memory:") as db:
        store = SqliteStore(db, clock=clock)
        await store.init()

        async with httpx.AsyncClient() as http_client:
            fetcher = Fetcher(http_client, settings.upstream)
            coordinator = CacheCoordinator(
                store,
                fetcher,
                clock=clock,
                default_page_size=settings.upstream.default_page_size,
            )
            yield AppState(
                settings=settings,
                store=store,
                fetcher=fetcher,
                coordinator=coordinator,
                http_client=http_client,
                db=db,
            )


@pytest.fixture()
async def client(app_state: AppState) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(state=app_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://localhost",
    ) as client:
        yield client
