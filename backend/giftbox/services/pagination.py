from __future__ import annotations

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def clamp_page(page, per_page, default_per_page: int = DEFAULT_PER_PAGE) -> tuple[int, int]:
    """Normalize 1-indexed page and per_page values coming from query strings."""
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    try:
        per_page = int(per_page) if per_page is not None else default_per_page
    except (TypeError, ValueError):
        per_page = default_per_page
    return max(page, 1), min(max(per_page, 1), MAX_PER_PAGE)


def paginate(query, page, per_page, default_per_page: int = DEFAULT_PER_PAGE) -> tuple[list, int, int, int]:
    """Return (rows, total, page, per_page) for an ordered query."""
    page, per_page = clamp_page(page, per_page, default_per_page)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    return rows, total, page, per_page
