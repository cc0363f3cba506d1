"""Shared test fixtures for the newsproxy test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from newsproxy.models.news import NewsEntry, NewsSource


class FakeClock:
    """Manually advanced clock shared by stores and coordinators under test."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sample_entries() -> list[NewsEntry]:
    """Two canonical entries as the fetcher would produce them."""
    return [
        NewsEntry(
            title="Local team wins final",
            source=NewsSource(id="Sports Daily", name="Sports Daily"),
            url="https://news.example.com/sports/final",
            url_to_image="https://img.example.com/final.jpg",
            published_at="2026-01-01T10:00:00.0000000Z",
            author="Sports Daily Wire Service",
            description="The home side took the title in extra time.",
            content="The home side took the title in extra time.",
        ),
        NewsEntry(
            title="Transfer window opens",
            source=NewsSource(id="Kickoff", name="Kickoff"),
            url="https://news.example.com/sports/transfers",
            url_to_image=None,
            published_at="2026-01-01T09:30:00.0000000Z",
            author="Kickoff",
            description="Clubs prepare their bids.",
            content="Clubs prepare their bids.",
        ),
    ]


@pytest.fixture()
def upstream_payload() -> dict[str, Any]:
    """Raw Bing News v7 response with one article per optional-field variant."""
    return {
        "_type": "News",
        "value": [
            {
                "name": "Local team wins final",
                "url": "https://news.example.com/sports/final",
                "image": {
                    "thumbnail": {
                        "contentUrl": "https://img.example.com/final.jpg",
                        "width": 700,
                        "height": 466,
                    }
                },
                "description": "The home side took the title in extra time.",
                "provider": [
                    {"_type": "Organization", "name": "Sports Daily"},
                    {"_type": "Organization", "name": "Wire Service"},
                ],
                "datePublished": "2026-01-01T10:00:00.0000000Z",
            },
            {
                "name": "Transfer window opens",
                "url": "https://news.example.com/sports/transfers",
                "description": "Clubs prepare their bids.",
                "provider": [{"_type": "Organization", "name": "Kickoff"}],
                "datePublished": "2026-01-01T09:30:00.0000000Z",
            },
        ],
    }
