"""Upstream news fetcher.

All network I/O goes through a single Fetcher instance shared across requests.
The Fetcher receives an httpx.AsyncClient via constructor injection; the
server lifespan owns the client lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from newsproxy import __version__
from newsproxy.errors import ErrorCode, NewsProxyError
from newsproxy.models.news import NewsEntry, NewsSource
from newsproxy.models.upstream import BingNewsArticle, BingNewsResponse

if TYPE_CHECKING:
    from newsproxy.config import UpstreamSettings
    from newsproxy.models.query import QueryDescriptor

log = structlog.get_logger()

API_KEY_HEADER = "Ocp-Apim-Subscription-Key"


def build_http_client(settings: UpstreamSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": f"newsproxy/{__version__}"},
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


def build_request(base_url: str, query: QueryDescriptor) -> tuple[str, dict[str, str]]:
    """Return the upstream URL and query parameters for a descriptor.

    Category descriptors use the category endpoint; everything else uses the
    search endpoint with optional ``count`` and ``q``.
    """
    base = base_url.rstrip("/")
    if query.category is not None:
        return f"{base}/news", {"category": query.category.value}

    params: dict[str, str] = {}
    if query.page_size is not None:
        params["count"] = str(query.page_size)
    if query.text is not None:
        params["q"] = query.text
    return f"{base}/news/search", params


def map_article(article: BingNewsArticle) -> NewsEntry:
    """Map one upstream article to a NewsEntry.

    Upstream has a single description field, so it fills both ``description``
    and ``content``. The first provider doubles as source id and name.
    """
    provider_names = [provider.name for provider in article.provider]
    thumbnail = article.image.thumbnail if article.image is not None else None
    return NewsEntry(
        title=article.name,
        source=NewsSource(id=provider_names[0], name=provider_names[0]),
        url=article.url,
        url_to_image=thumbnail.content_url if thumbnail is not None else None,
        published_at=article.date_published,
        author=" ".join(provider_names),
        description=article.description,
        content=article.description,
    )


def _unavailable(message: str) -> NewsProxyError:
    return NewsProxyError(
        code=ErrorCode.UPSTREAM_UNAVAILABLE,
        message=message,
        suggestion="The news service may be temporarily unavailable. Try again later.",
        recoverable=True,
    )


class Fetcher:
    """Calls the upstream news API for a descriptor. One attempt, no retries."""

    def __init__(self, client: httpx.AsyncClient, settings: UpstreamSettings) -> None:
        self._client = client
        self._settings = settings

    async def fetch(self, query: QueryDescriptor) -> list[NewsEntry]:
        """Fetch and map the upstream result set.

        Raises NewsProxyError(UPSTREAM_UNAVAILABLE) on network errors, timeouts,
        non-2xx responses and absent bodies, and
        NewsProxyError(UPSTREAM_SCHEMA_MISMATCH) when the payload no longer
        matches the expected shape.
        """
        url, params = build_request(self._settings.base_url, query)
        headers = {API_KEY_HEADER: self._settings.api_key}

        try:
            response = await self._client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise _unavailable(f"Timed out fetching {url}") from exc
        except httpx.HTTPError as exc:
            raise _unavailable(f"Network error fetching {url}: {exc}") from exc

        if not response.is_success:
            raise _unavailable(f"HTTP {response.status_code} fetching {url}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise _unavailable(f"Non-JSON body from {url}") from exc
        if payload is None:
            raise _unavailable(f"Empty body from {url}")

        try:
            parsed = BingNewsResponse.model_validate(payload)
        except ValidationError as exc:
            raise NewsProxyError(
                code=ErrorCode.UPSTREAM_SCHEMA_MISMATCH,
                message=f"Unexpected payload shape from {url}: {exc.error_count()} error(s)",
                suggestion="The upstream API schema may have changed.",
                recoverable=False,
            ) from exc

        entries = [map_article(article) for article in parsed.value]
        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            entry_count=len(entries),
        )
        return entries
