# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/backoffice/routes/sales.py
"""
Sale routes.

Request body for preview and commit:
    {
        "items": [{"product_id": 1, "quantity": 3}, ...],
        "deferred_payment": false,
        "customer_id": null,
        "paying_now": ""
    }

Sales always charge the product's current price. With deferred_payment the
customer is mandatory and paying_now (optional, digits read as cents) is what
is collected right away.
"""

from flask import Blueprint, request, current_app

from .. import money
from ..errors import ValidationError
from ..services import commit_service, history_service
from ..services.cart import CART_SALE, build_cart
from ..services.products_service import load_catalog
from ..validation import to_bool
from .responses import error_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _cart_from_payload(data: dict):
    fmt = money.format_from_config(current_app.config)
    return build_cart(load_catalog(), CART_SALE, data.get("items"), fmt=fmt)


@sales_bp.post("/preview")
def preview_sale_route():
    """Rebuild the cart and return its lines and totals without writing anything."""
    data = request.get_json(silent=True) or {}
    try:
        cart = _cart_from_payload(data)
    except ValidationError as e:
        return error_response(e)
    return {"cart": cart.to_dict()}, 200


@sales_bp.post("")
def create_sale_route():
    """Commit a sale: stock goes down, lines, header and payment are written atomically."""
    data = request.get_json(silent=True) or {}
    try:
        cart = _cart_from_payload(data)
        is_deferred = to_bool("deferred_payment", data.get("deferred_payment", False))
    except ValidationError as e:
        return error_response(e)

    try:
        result = commit_service.commit_sale(
            cart,
            is_deferred=is_deferred,
            customer_id=data.get("customer_id"),
            paying_now=data.get("paying_now"),
        )
        if not result.ok:
            body, status = error_response(result.error)
            body["cart"] = cart.to_dict()
            return body, status

        sale = history_service.get_sale(result.header_id)
        return {"sale": sale.to_dict(include_lines=True)}, 201

    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return {"error": "Internal server error"}, 500


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params: search (title substring), customer_id, page (default 1), per_page.
    """
    return history_service.list_sales(
        search=request.args.get("search"),
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", type=int),
        customer_id=request.args.get("customer_id", type=int),
    )


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    sale = history_service.get_sale(sale_id)
    if not sale:
        return {"error": "Sale not found"}, 404
    return {"sale": sale.to_dict(include_lines=True)}, 200
