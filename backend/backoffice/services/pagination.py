# Overview: Shared offset pagination for listing endpoints.

from __future__ import annotations

from typing import Callable

from flask import current_app


def paginate(
    base_query,
    *,
    page: int | None = None,
    per_page: int | None = None,
    serialize: Callable | None = None,
) -> dict:
    """
    Run base_query and shape it as {"items", "count", "pagination"?}.

    If page is None every row is returned and no pagination block is added.
    """
    if serialize is None:
        serialize = lambda row: row.to_dict()  # noqa: E731

    # If no pagination requested, return all items
    if page is None:
        rows = base_query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    default_per_page = current_app.config.get("LIST_PAGE_SIZE", 9)
    max_per_page = current_app.config.get("LIST_MAX_PAGE_SIZE", 100)
    per_page = min(per_page or default_per_page, max_per_page)
    per_page = max(per_page, 1)
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    if page > total_pages:
        rows = []
    else:
        rows = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
