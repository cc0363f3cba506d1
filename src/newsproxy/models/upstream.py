"""Bing News v7 response schema.

Only the fields the proxy maps are modelled. ``image``, ``image.thumbnail`` and
``description`` are optional upstream; everything else is required so that a
changed payload shape fails validation instead of producing null entries.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BingProvider(_UpstreamModel):
    name: str


class BingThumbnail(_UpstreamModel):
    content_url: str


class BingImage(_UpstreamModel):
    thumbnail: BingThumbnail | None = None


class BingNewsArticle(_UpstreamModel):
    name: str
    url: str
    description: str = ""
    date_published: str
    provider: list[BingProvider] = Field(min_length=1)
    image: BingImage | None = None


class BingNewsResponse(_UpstreamModel):
    value: list[BingNewsArticle]
