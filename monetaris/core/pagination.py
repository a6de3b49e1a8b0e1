from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel

from monetaris.core.config import settings

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: list[T]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, items: list[T], total_count: int, page: int, page_size: int) -> "Page[T]":
        total_pages = math.ceil(total_count / page_size) if page_size else 0
        return cls(
            items=items,
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


def normalize_paging(page: int | None, page_size: int | None) -> tuple[int, int]:
    """Clamp paging parameters to sane bounds."""
    page = max(1, page or 1)
    size = page_size or settings.PAGE_SIZE_DEFAULT
    size = max(1, min(size, settings.PAGE_SIZE_MAX))
    return page, size
