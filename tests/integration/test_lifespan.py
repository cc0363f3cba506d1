"""Tests for server startup and shutdown wiring in server.py."""

from __future__ import annotations

from typing import TYPE_CHECKING

from newsproxy.config import Settings
from newsproxy.coordinator import CacheCoordinator
from newsproxy.fetcher import Fetcher
from newsproxy.server import build_state, create_app
from newsproxy.store import MemoryStore, SqliteStore

if TYPE_CHECKING:
    from pathlib import Path


class TestBuildState:
    async def test_memory_backend(self) -> None:
        state = await build_state(Settings(cache={"backend": "memory"}))
        try:
            assert isinstance(state.store, MemoryStore)
            assert isinstance(state.fetcher, Fetcher)
            assert isinstance(state.coordinator, CacheCoordinator)
            assert state.db is None
        finally:
            assert state.http_client is not None
            await state.http_client.aclose()

    async def test_sqlite_backend_creates_database(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "cache.db"
        state = await build_state(Settings(cache={"backend": "sqlite", "db_path": str(db_path)}))
        try:
            assert isinstance(state.store, SqliteStore)
            assert db_path.exists()
        finally:
            assert state.http_client is not None
            assert state.db is not None
            await state.http_client.aclose()
            await state.db.close()


class TestLifespan:
    async def test_lifespan_builds_and_releases_state(self, tmp_path: Path) -> None:
        settings = Settings(
            cache={"backend": "sqlite", "db_path": str(tmp_path / "cache.db")},
            logging={"format": "text"},
        )
        app = create_app(settings)

        async with app.router.lifespan_context(app):
            state = app.state.app_state
            assert state.settings is settings
            assert isinstance(state.store, SqliteStore)
            assert await state.store.lookup("missing") is None

        assert state.http_client is not None
        assert state.http_client.is_closed
