"""Store fixtures. ``store`` runs each test against both implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import pytest

from newsproxy.store import MemoryStore, SqliteStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from newsproxy.protocols import StoreProtocol
    from tests.conftest import FakeClock


@pytest.fixture()
async def sqlite_store(clock: FakeClock) -> AsyncGenerator[SqliteStore, None]:
    async with aiosqlite.connect(":memory:") as db:
        store = SqliteStore(db, clock=clock)
        await store.init()
        yield store


@pytest.fixture(params=["sqlite", "memory"])
async def store(
    request: pytest.FixtureRequest, clock: FakeClock
) -> AsyncGenerator[StoreProtocol, None]:
    if request.param == "memory":
        yield MemoryStore(clock=clock)
        return
    async with aiosqlite.connect(":memory:") as db:
        sqlite_store = SqliteStore(db, clock=clock)
        await sqlite_store.init()
        yield sqlite_store
