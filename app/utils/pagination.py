from dataclasses import dataclass
from math import ceil

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_pagination(page: int | None = None, limit: int | None = None) -> PageRequest:
    """Clamp page to >= 1 and limit to [1, MAX_LIMIT]; missing values take the defaults."""
    valid_page = max(1, page or DEFAULT_PAGE)
    valid_limit = min(MAX_LIMIT, max(1, limit or DEFAULT_LIMIT))
    return PageRequest(page=valid_page, limit=valid_limit)


def build_meta(total: int, request: PageRequest) -> dict:
    total_pages = ceil(total / request.limit)
    return {
        "page": request.page,
        "limit": request.limit,
        "total": total,
        "total_pages": total_pages,
        "has_next_page": request.page < total_pages,
        "has_prev_page": request.page > 1,
    }
