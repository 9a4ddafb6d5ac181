# Overview: Page/limit clamping and pagination metadata shared by list endpoints.

from __future__ import annotations

MAX_PER_PAGE = 100


def clamp_page(page: int | None, per_page: int | None, *, default: int) -> tuple[int, int]:
    page = max(page or 1, 1)
    per_page = min(max(per_page or default, 1), MAX_PER_PAGE)
    return page, per_page


def paginate_query(query, page: int, per_page: int) -> tuple[list, dict]:
    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    return rows, {
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
