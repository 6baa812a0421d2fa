import math
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def page_request(page: Any, limit: Any, default_limit: int, max_limit: Optional[int] = None) -> PageRequest:
    """Parses query-string page/limit, falling back to defaults for missing or junk values."""
    page_num = _to_int(page)
    limit_num = _to_int(limit)
    if page_num is None or page_num < 1:
        page_num = 1
    if limit_num is None or limit_num < 1:
        limit_num = default_limit
    if max_limit is not None:
        limit_num = min(limit_num, max_limit)
    return PageRequest(page=page_num, limit=limit_num)


def total_pages(total_count: int, limit: int) -> int:
    return math.ceil(total_count / limit) if limit else 0


def pagination_envelope(request: PageRequest, total_count: int) -> dict:
    pages = total_pages(total_count, request.limit)
    return {
        "currentPage": request.page,
        "totalPages": pages,
        "totalCount": total_count,
        "hasNextPage": request.page < pages,
        "hasPrevPage": request.page > 1,
    }
