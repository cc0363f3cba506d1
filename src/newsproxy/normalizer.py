"""Request normalisation: loosely-typed ``params`` to a QueryDescriptor."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from newsproxy.errors import ErrorCode, NewsProxyError
from newsproxy.models.query import (
    ANY_CATEGORY,
    MAX_PAGE_SIZE,
    MIN_PAGE_SIZE,
    Category,
    NewsParams,
    QueryDescriptor,
)

DEFAULT_PAGE_SIZE = 20


def clamp_page_size(page_size: int) -> int:
    return max(MIN_PAGE_SIZE, min(page_size, MAX_PAGE_SIZE))


def list_categories(*, include_any: bool = True) -> list[str]:
    """Category values in display order, optionally led by the ``"Any"`` sentinel."""
    values = [category.value for category in Category]
    return [ANY_CATEGORY, *values] if include_any else values


def normalize(
    raw: Mapping[str, Any] | None,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> QueryDescriptor:
    """Turn request params into the canonical descriptor.

    ``raw is None`` (no params object at all) yields the default search query.
    A category other than ``"Any"`` selects the category branch and drops
    ``q``/``pageSize``. Otherwise ``pageSize`` is clamped to [1, 100] and ``q``
    is passed through untouched.

    Raises NewsProxyError(INVALID_CATEGORY) for an unknown category and
    NewsProxyError(INVALID_INPUT) when the params object is malformed.
    """
    if raw is None:
        return QueryDescriptor(page_size=default_page_size)

    try:
        params = NewsParams.model_validate(raw)
    except ValidationError as exc:
        raise NewsProxyError(
            code=ErrorCode.INVALID_INPUT,
            message=f"Invalid news params: {exc.errors(include_url=False)}",
            suggestion="Send pageSize as an integer and q as a string.",
            recoverable=False,
        ) from exc

    if params.category is not None and params.category != ANY_CATEGORY:
        try:
            category = Category(params.category)
        except (TypeError, ValueError) as exc:
            raise NewsProxyError(
                code=ErrorCode.INVALID_CATEGORY,
                message=f"Invalid category: {params.category}",
                suggestion="Call GET /categories for the list of supported values.",
                recoverable=False,
            ) from exc
        return QueryDescriptor(category=category)

    page_size = clamp_page_size(params.page_size) if params.page_size is not None else None
    return QueryDescriptor(text=params.q, page_size=page_size)
