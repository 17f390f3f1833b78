"""
Shared list/filter/paginate helpers for the collection endpoints.

Every collection answers with the same envelope:

    {"items": [...], "meta": {"total": n, "page": p, "limit": l, "totalPages": t}}
"""
from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from flask import current_app, has_app_context
from sqlalchemy import or_
from sqlalchemy.orm import Query

DEFAULT_MAX_LIMIT = 100
# Keeps OFFSET = (page - 1) * limit far inside a 64-bit integer.
MAX_PAGE = 1_000_000


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def parse_pagination(args: Mapping[str, Any], default_limit: int, max_limit: int | None = None) -> tuple[int, int]:
    """
    `page`/`limit` from untrusted query strings.

    Missing, non-numeric or < 1 values fall back to page 1 and `default_limit`;
    `page` is clamped to MAX_PAGE and `limit` is capped at MAX_PAGE_LIMIT.
    """
    if max_limit is None:
        max_limit = current_app.config.get("MAX_PAGE_LIMIT", DEFAULT_MAX_LIMIT) if has_app_context() else DEFAULT_MAX_LIMIT
    page = min(_positive_int(args.get("page"), 1), MAX_PAGE)
    limit = min(_positive_int(args.get("limit"), default_limit), max_limit)
    return page, limit


def parse_bool_arg(value: Any) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


def search_clause(term: str, *columns):
    """Case-insensitive substring match OR-combined across `columns`."""
    like = f"%{term}%"
    return or_(*(col.ilike(like) for col in columns))


@dataclass(frozen=True)
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def envelope(self, serialize: Callable[[Any], dict]) -> dict:
        return {
            "items": [serialize(item) for item in self.items],
            "meta": {
                "total": self.total,
                "page": self.page,
                "limit": self.limit,
                "totalPages": self.total_pages,
            },
        }


def paginate(query: Query, page: int, limit: int) -> Page:
    """
    Count the filtered query, then fetch one page of it.
    The query must already carry a deterministic order_by. A page past the
    end is empty; the fetch is skipped.
    """
    total = query.order_by(None).count()
    offset = (page - 1) * limit
    if offset >= total:
        return Page(items=[], total=total, page=page, limit=limit)
    items = query.offset(offset).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)
