"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan context manager
- Route ``GET /categories`` and ``POST /news`` and map errors to status codes
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import sys
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from newsproxy import __version__
from newsproxy.config import Settings
from newsproxy.coordinator import CacheCoordinator
from newsproxy.errors import ErrorCode, NewsProxyError
from newsproxy.fetcher import Fetcher, build_http_client
from newsproxy.normalizer import list_categories
from newsproxy.schedulers import run_store_cleanup_scheduler
from newsproxy.state import AppState
from newsproxy.store import MemoryStore, SqliteStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

    from newsproxy.protocols import StoreProtocol

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


async def _open_store(settings: Settings) -> tuple[StoreProtocol, aiosqlite.Connection | None]:
    """Create the configured store. Fails fast if the database cannot be opened."""
    ttl = timedelta(minutes=settings.cache.ttl_minutes)
    if settings.cache.backend == "memory":
        return MemoryStore(ttl=ttl), None

    db_path = Path(settings.cache.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    store = SqliteStore(db, ttl=ttl)
    await store.init()
    return store, db


async def build_state(settings: Settings) -> AppState:
    """Wire store, HTTP client, fetcher and coordinator."""
    store, db = await _open_store(settings)
    http_client = build_http_client(settings.upstream)
    fetcher = Fetcher(http_client, settings.upstream)
    coordinator = CacheCoordinator(
        store,
        fetcher,
        default_page_size=settings.upstream.default_page_size,
        single_flight=settings.cache.single_flight,
    )
    return AppState(
        settings=settings,
        store=store,
        fetcher=fetcher,
        coordinator=coordinator,
        http_client=http_client,
        db=db,
    )


def _make_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        """Create and tear down all shared resources for the server's lifetime."""
        _setup_logging(settings)
        log.info(
            "server_starting",
            version=__version__,
            cache_backend=settings.cache.backend,
        )

        state = await build_state(settings)
        app.state.app_state = state
        cleanup_task = asyncio.create_task(run_store_cleanup_scheduler(state))

        log.info(
            "server_started",
            version=__version__,
            host=settings.server.host,
            port=settings.server.port,
            single_flight=settings.cache.single_flight,
        )

        try:
            yield
        finally:
            cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await cleanup_task
            if state.http_client is not None:
                await state.http_client.aclose()
            if state.db is not None:
                await state.db.close()
            log.info("server_stopping")

    return lifespan


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

_ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_CATEGORY: 401,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.STORE_UNAVAILABLE: 503,
}


def _serialise_error(error: NewsProxyError) -> JSONResponse:
    """Convert a NewsProxyError to its HTTP response."""
    status_code = _ERROR_STATUS.get(error.code, 500)
    if error.code == ErrorCode.INVALID_CATEGORY:
        # Existing clients expect a bare JSON string here.
        return JSONResponse(error.message, status_code=status_code)
    return JSONResponse(error.to_dict(), status_code=status_code)


_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_FORM_PARAM = re.compile(r"^params\[(\w+)\]$")


async def _read_form_params(request: Request) -> dict[str, str] | None:
    """Fold ``params[name]=value`` form fields into a params mapping."""
    form = await request.form()
    params: dict[str, str] = {}
    for field, value in form.multi_items():
        match = _FORM_PARAM.match(field)
        if match is not None and isinstance(value, str):
            params[match.group(1)] = value
    return params or None


async def _read_params(request: Request) -> Any:
    """Extract ``params`` from a JSON or form-encoded body.

    An empty body, or a form without ``params[...]`` fields, means no params.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_CONTENT_TYPE):
        return await _read_form_params(request)

    body = await request.body()
    if not body.strip():
        return None
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise NewsProxyError(
            code=ErrorCode.INVALID_INPUT,
            message="Request body is not valid JSON.",
            suggestion='Send a JSON object such as {"params": {"category": "Sports"}}.',
            recoverable=False,
        ) from exc
    if not isinstance(payload, dict):
        raise NewsProxyError(
            code=ErrorCode.INVALID_INPUT,
            message="Request body must be a JSON object.",
            suggestion='Send a JSON object such as {"params": {"category": "Sports"}}.',
            recoverable=False,
        )
    return payload.get("params")


async def categories(request: Request) -> JSONResponse:
    return JSONResponse(
        {"categories": [{"value": value, "text": value} for value in list_categories()]}
    )


async def news(request: Request) -> JSONResponse:
    state: AppState = request.app.state.app_state
    try:
        params = await _read_params(request)
        result = await state.coordinator.resolve(params)
    except NewsProxyError as exc:
        log.warning(
            "request_error",
            route="/news",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_error(exc)
    except Exception:
        log.error("request_unexpected_error", route="/news", exc_info=True)
        raise

    body = {
        "news": [entry.model_dump(mode="json", by_alias=True) for entry in result.entries],
        "lastUpdated": result.age_millis,
    }
    status_code = 400 if result.source == "unavailable" else 200
    return JSONResponse(body, status_code=status_code)


def create_app(settings: Settings | None = None, *, state: AppState | None = None) -> Starlette:
    """Build the Starlette app.

    With ``state`` the app is pre-wired and runs no lifespan (used by tests);
    otherwise the lifespan builds state from ``settings``.
    """
    if state is not None:
        settings = state.settings
    elif settings is None:
        settings = Settings()

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.server.cors_origins,
            allow_methods=settings.server.cors_methods,
            allow_headers=["Content-Type"],
        )
    ]
    routes = [
        Route("/categories", categories, methods=["GET"]),
        Route("/news", news, methods=["POST"]),
    ]

    app = Starlette(
        routes=routes,
        middleware=middleware,
        lifespan=None if state is not None else _make_lifespan(settings),
    )
    if state is not None:
        app.state.app_state = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
