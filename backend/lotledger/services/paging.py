# Overview: Page/page-size normalization shared by list queries.

from __future__ import annotations

from flask import current_app


def normalize_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and page_size to 1..MAX_PAGE_SIZE."""
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = page if page and page > 0 else 1
    if page_size is None:
        page_size = default_size
    page_size = min(max_size, max(1, page_size))
    return page, page_size


def paginate(query, page: int | None, page_size: int | None) -> dict:
    """Run count + slice for an already ordered query."""
    page, page_size = normalize_page(page, page_size)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return {
        "items": rows,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
