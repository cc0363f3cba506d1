from __future__ import annotations

from newsproxy.models.news import CacheRecord, NewsEntry, NewsSource, ResolvedNews
from newsproxy.models.query import (
    ANY_CATEGORY,
    Category,
    NewsParams,
    QueryDescriptor,
)
from newsproxy.models.upstream import (
    BingImage,
    BingNewsArticle,
    BingNewsResponse,
    BingProvider,
    BingThumbnail,
)

__all__ = [
    # query
    "ANY_CATEGORY",
    "Category",
    "NewsParams",
    "QueryDescriptor",
    # news
    "NewsSource",
    "NewsEntry",
    "CacheRecord",
    "ResolvedNews",
    # upstream
    "BingProvider",
    "BingThumbnail",
    "BingImage",
    "BingNewsArticle",
    "BingNewsResponse",
]
