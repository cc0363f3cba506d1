from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (``urlToImage``, ``publishedAt``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewsSource(_WireModel):
    id: str | None = None
    name: str


class NewsEntry(_WireModel):
    """Canonical news item. ``url`` is its identity in the archival index."""

    title: str
    source: NewsSource
    url: str
    url_to_image: str | None = None
    published_at: str
    author: str
    description: str
    content: str


class CacheRecord(BaseModel):
    """Result set cached for one query key."""

    key: str
    entries: list[NewsEntry]
    fetched_at: datetime

    def age_millis(self, now: datetime) -> int:
        return max(0, int((now - self.fetched_at).total_seconds() * 1000))


class ResolvedNews(BaseModel):
    entries: list[NewsEntry]
    age_millis: int
    source: Literal["cache", "upstream", "unavailable"]
