"""Background scheduler coroutine for expired cache record cleanup."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from newsproxy.state import AppState

log = structlog.get_logger()


async def run_store_cleanup_scheduler(state: AppState) -> None:
    """Purge expired records at startup and then every cleanup interval.

    Lookups already refuse expired records; this keeps the store from growing
    with keys nobody asks for again.
    """
    interval_seconds = state.settings.cache.cleanup_interval_minutes * 60

    while True:
        try:
            await state.store.purge_expired()
        except Exception:
            log.warning("store_cleanup_scheduler_error", exc_info=True)
        await asyncio.sleep(interval_seconds)
