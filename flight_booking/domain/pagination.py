import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PageMeta:
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


def page_offset(page: int, limit: int) -> int:
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")
    return (page - 1) * limit


def page_meta(total: int, page: int, limit: int) -> PageMeta:
    total_pages = math.ceil(total / limit)
    return PageMeta(
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
