"""Unit tests for newsproxy.normalizer."""

from __future__ import annotations

import pytest

from newsproxy.errors import ErrorCode, NewsProxyError
from newsproxy.models.query import Category, QueryDescriptor
from newsproxy.normalizer import clamp_page_size, list_categories, normalize


class TestNormalize:
    def test_absent_params_use_default_search(self) -> None:
        assert normalize(None) == QueryDescriptor(page_size=20)

    def test_default_page_size_is_configurable(self) -> None:
        assert normalize(None, default_page_size=50).page_size == 50

    def test_valid_category_selects_category_branch(self) -> None:
        query = normalize({"category": "Business"})
        assert query.category is Category.BUSINESS
        assert query.text is None
        assert query.page_size is None

    def test_category_drops_text_and_page_size(self) -> None:
        query = normalize({"category": "World_Asia", "q": "markets", "pageSize": 5})
        assert query == QueryDescriptor(category=Category.WORLD_ASIA)

    def test_unknown_category_raises(self) -> None:
        with pytest.raises(NewsProxyError) as exc_info:
            normalize({"category": "NotARealCategory"})
        assert exc_info.value.code == ErrorCode.INVALID_CATEGORY
        assert exc_info.value.message == "Invalid category: NotARealCategory"
        assert exc_info.value.recoverable is False

    def test_category_is_case_sensitive(self) -> None:
        with pytest.raises(NewsProxyError) as exc_info:
            normalize({"category": "sports"})
        assert exc_info.value.code == ErrorCode.INVALID_CATEGORY

    @pytest.mark.parametrize(("category", "shown"), [(7, "7"), (["Sports"], "['Sports']")])
    def test_non_string_category_is_invalid_category(self, category: object, shown: str) -> None:
        with pytest.raises(NewsProxyError) as exc_info:
            normalize({"category": category, "pageSize": 10})
        assert exc_info.value.code == ErrorCode.INVALID_CATEGORY
        assert exc_info.value.message == f"Invalid category: {shown}"

    def test_any_category_falls_through_to_search(self) -> None:
        query = normalize({"category": "Any", "q": "rain", "pageSize": 10})
        assert query == QueryDescriptor(text="rain", page_size=10)

    @pytest.mark.parametrize(
        ("page_size", "expected"),
        [(500, 100), (101, 100), (100, 100), (37, 37), (1, 1), (0, 1), (-4, 1)],
    )
    def test_page_size_is_clamped(self, page_size: int, expected: int) -> None:
        assert normalize({"pageSize": page_size}).page_size == expected

    def test_missing_page_size_sends_no_limit(self) -> None:
        query = normalize({"q": "climate"})
        assert query.page_size is None
        assert query.text == "climate"

    def test_text_passed_through_verbatim(self) -> None:
        text = "  Björk & Sigur Rós?  "
        assert normalize({"q": text}).text == text

    def test_empty_params_object(self) -> None:
        assert normalize({}) == QueryDescriptor()

    def test_numeric_string_page_size_is_accepted(self) -> None:
        assert normalize({"pageSize": "15"}).page_size == 15

    @pytest.mark.parametrize(
        "raw",
        [{"pageSize": "lots"}, {"pageSize": 2.5}, {"q": ["a", "b"]}, ["Sports"]],
    )
    def test_malformed_params_raise_invalid_input(self, raw: object) -> None:
        with pytest.raises(NewsProxyError) as exc_info:
            normalize(raw)  # type: ignore[arg-type]
        assert exc_info.value.code == ErrorCode.INVALID_INPUT


class TestQueryDescriptor:
    def test_equal_descriptors_share_cache_key(self) -> None:
        a = normalize({"q": "rain", "pageSize": 500})
        b = normalize({"pageSize": 100, "q": "rain", "category": "Any"})
        assert a == b
        assert a.cache_key() == b.cache_key()
        assert hash(a) == hash(b)

    def test_branches_have_distinct_keys(self) -> None:
        keys = {
            normalize({"category": "Sports"}).cache_key(),
            normalize({"q": "Sports"}).cache_key(),
            normalize(None).cache_key(),
            normalize({}).cache_key(),
        }
        assert len(keys) == 4

    def test_is_immutable(self) -> None:
        query = normalize({"category": "Sports"})
        with pytest.raises(ValueError):
            query.text = "changed"  # type: ignore[misc]

    def test_category_cannot_be_combined(self) -> None:
        with pytest.raises(ValueError):
            QueryDescriptor(category=Category.SPORTS, text="football")


class TestHelpers:
    def test_list_categories_leads_with_any(self) -> None:
        values = list_categories()
        assert values[0] == "Any"
        assert len(values) == 15
        assert "ScienceAndTechnology" in values

    def test_list_categories_without_sentinel(self) -> None:
        assert "Any" not in list_categories(include_any=False)

    def test_clamp_page_size(self) -> None:
        assert clamp_page_size(1000) == 100
        assert clamp_page_size(0) == 1
