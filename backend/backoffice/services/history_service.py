# Overview: Read-only listings of committed purchases and sales.

from __future__ import annotations

from sqlalchemy import false
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Purchase, Sale
from ..validation import is_valid_id
from .pagination import paginate


def _title_filter(query, model, search: str | None):
    if search:
        # Wildcards typed by the operator match literally
        term = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        query = query.filter(model.title.ilike(f"%{term}%", escape="\\"))
    return query


def _purchase_row(purchase: Purchase) -> dict:
    data = purchase.to_dict()
    data["line_count"] = len(purchase.lines)
    data["lines_total_cents"] = sum(line.line_total_cents for line in purchase.lines)
    return data


def _sale_row(sale: Sale) -> dict:
    data = sale.to_dict()
    data["line_count"] = len(sale.lines)
    data["lines_total_cents"] = sum(line.line_total_cents for line in sale.lines)
    return data


def list_purchases(search: str | None = None, page: int | None = 1, per_page: int | None = None) -> dict:
    """Purchases newest first, filtered by a case-insensitive title search."""
    query = db.session.query(Purchase).options(selectinload(Purchase.lines))
    query = _title_filter(query, Purchase, search)
    query = query.order_by(Purchase.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=_purchase_row)


def list_sales(
    search: str | None = None,
    page: int | None = 1,
    per_page: int | None = None,
    customer_id: int | None = None,
) -> dict:
    """Sales newest first, optionally restricted to one customer."""
    query = db.session.query(Sale).options(selectinload(Sale.lines))
    query = _title_filter(query, Sale, search)
    if customer_id is not None:
        if not is_valid_id(customer_id):
            query = query.filter(false())
        else:
            query = query.filter(Sale.customer_id == customer_id)
    query = query.order_by(Sale.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=_sale_row)


def get_purchase(purchase_id: int) -> Purchase | None:
    if not is_valid_id(purchase_id):
        return None
    return db.session.get(Purchase, purchase_id)


def get_sale(sale_id: int) -> Sale | None:
    if not is_valid_id(sale_id):
        return None
    return db.session.get(Sale, sale_id)
