from __future__ import annotations

import math
from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel

from backend.app.core.config import settings

T = TypeVar("T")


def page_bounds(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_LIMIT."""
    page = max(page or 1, 1)
    limit = min(max(limit or settings.default_page_limit, 1), settings.max_page_limit)
    return page, limit


class Page(BaseModel, Generic[T]):
    count: int
    page: int
    limit: int
    total_pages: int
    total_count: int
    data: list[T]

    @classmethod
    def build(cls, rows: Sequence, *, page: int, limit: int, total_count: int) -> "Page[T]":
        return cls(
            count=len(rows),
            page=page,
            limit=limit,
            total_pages=math.ceil(total_count / limit) if limit else 0,
            total_count=total_count,
            data=list(rows),
        )
