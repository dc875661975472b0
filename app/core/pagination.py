import math
from dataclasses import dataclass

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def total_pages(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / limit)


def build_pagination(page: PageRequest, total: int, total_key: str = "total_posts",
                     per_page_key: str = "posts_per_page") -> dict:
    """Pagination envelope shared by every list endpoint."""
    pages = total_pages(total, page.limit)
    return {
        "current_page": page.page,
        "total_pages": pages,
        total_key: total,
        per_page_key: page.limit,
        "has_next_page": page.page < pages,
        "has_prev_page": page.page > 1,
    }
