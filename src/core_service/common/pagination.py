from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, List, Tuple, TypeVar

from ..core.constants import DEFAULT_PAGE, DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    def meta(self) -> dict:
        return {"total": self.total, "page": self.page, "limit": self.limit, "pages": self.pages}


def normalize_paging(page: Any = None, limit: Any = None, *, max_limit: int = MAX_PAGE_LIMIT) -> Tuple[int, int]:
    try:
        page_n = int(page) if page not in (None, "") else DEFAULT_PAGE
    except (TypeError, ValueError):
        page_n = DEFAULT_PAGE
    try:
        limit_n = int(limit) if limit not in (None, "") else DEFAULT_PAGE_LIMIT
    except (TypeError, ValueError):
        limit_n = DEFAULT_PAGE_LIMIT
    return max(page_n, 1), min(max(limit_n, 1), max_limit)


def paginate(items: List[T], page: int, limit: int) -> Page[T]:
    """Slice an already filtered list."""
    start = (page - 1) * limit
    return Page(items=list(items[start : start + limit]), total=len(items), page=page, limit=limit)
