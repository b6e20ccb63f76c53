"""Page slicing over fully filtered results."""
from __future__ import annotations

import math
from typing import Sequence

from .models import PageResult, ShowRecord


def total_pages(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return int(math.ceil(total / page_size))


def paginate(rows: Sequence[ShowRecord], page: int, page_size: int) -> PageResult:
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    total = len(rows)
    start = (page - 1) * page_size
    end = min(start + page_size, total)
    data = list(rows[start:end]) if start < total else []
    return PageResult(
        data=data,
        total_count=total,
        page_size=page_size,
        current_page=page,
        total_pages=total_pages(total, page_size),
    )


def empty_page(page: int, page_size: int) -> PageResult:
    return PageResult(data=[], total_count=0, page_size=page_size, current_page=page, total_pages=0)
