# Overview: Flask API routes for purchases (stock inbound); parses input and returns JSON responses.

# backend/backoffice/routes/purchases.py
"""
Purchase routes.

Request body for preview and commit:
    {"items": [{"product_id": 1, "quantity": 2, "buy_value": "150"}, ...]}

buy_value is optional operator input (digits only count, read as cents);
without it the product's default buy price is used.
"""

from flask import Blueprint, request, current_app

from .. import money
from ..errors import ValidationError
from ..services import commit_service, history_service
from ..services.cart import CART_PURCHASE, build_cart
from ..services.products_service import load_catalog
from .responses import error_response


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


def _cart_from_request():
    data = request.get_json(silent=True) or {}
    fmt = money.format_from_config(current_app.config)
    return build_cart(load_catalog(), CART_PURCHASE, data.get("items"), fmt=fmt)


@purchases_bp.post("/preview")
def preview_purchase_route():
    """Rebuild the cart and return its lines and totals without writing anything."""
    try:
        cart = _cart_from_request()
    except ValidationError as e:
        return error_response(e)
    return {"cart": cart.to_dict()}, 200


@purchases_bp.post("")
def create_purchase_route():
    """Commit a purchase: stock goes up, lines and header are written atomically."""
    try:
        cart = _cart_from_request()
    except ValidationError as e:
        return error_response(e)

    try:
        result = commit_service.commit_purchase(cart)
        if not result.ok:
            body, status = error_response(result.error)
            body["cart"] = cart.to_dict()
            return body, status

        purchase = history_service.get_purchase(result.header_id)
        return {"purchase": purchase.to_dict(include_lines=True)}, 201

    except Exception:
        current_app.logger.exception("Failed to commit purchase")
        return {"error": "Internal server error"}, 500


@purchases_bp.get("")
def list_purchases_route():
    """
    List purchases, newest first.

    Query params: search (title substring), page (default 1), per_page.
    """
    return history_service.list_purchases(
        search=request.args.get("search"),
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", type=int),
    )


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    purchase = history_service.get_purchase(purchase_id)
    if not purchase:
        return {"error": "Purchase not found"}, 404
    return {"purchase": purchase.to_dict(include_lines=True)}, 200
