from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

ANY_CATEGORY = "Any"

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100


class Category(StrEnum):
    """Upstream news categories. ``"Any"`` is a request sentinel, not a member."""

    BUSINESS = "Business"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    POLITICS = "Politics"
    PRODUCTS = "Products"
    SCIENCE_AND_TECHNOLOGY = "ScienceAndTechnology"
    SPORTS = "Sports"
    US = "US"
    WORLD = "World"
    WORLD_AFRICA = "World_Africa"
    WORLD_AMERICAS = "World_Americas"
    WORLD_ASIA = "World_Asia"
    WORLD_EUROPE = "World_Europe"
    WORLD_MIDDLE_EAST = "World_MiddleEast"


class NewsParams(BaseModel):
    """Loosely-typed ``params`` object of a ``POST /news`` body."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    page_size: int | None = Field(default=None, alias="pageSize")
    # Any JSON value; non-members (including non-strings) are INVALID_CATEGORY.
    category: Any = None
    q: str | None = None


class QueryDescriptor(BaseModel):
    """Canonical upstream query. Doubles as the cache key.

    Category queries and free-text queries hit different upstream endpoints,
    so a descriptor carries either ``category`` or ``text``/``page_size``.
    """

    model_config = ConfigDict(frozen=True)

    category: Category | None = None
    text: str | None = None
    page_size: int | None = Field(default=None, ge=MIN_PAGE_SIZE, le=MAX_PAGE_SIZE)

    @model_validator(mode="after")
    def _category_is_exclusive(self) -> QueryDescriptor:
        if self.category is not None and (self.text is not None or self.page_size is not None):
            raise ValueError("category descriptors cannot carry text or page_size")
        return self

    def cache_key(self) -> str:
        """Deterministic serialisation used as the storage key."""
        return json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
