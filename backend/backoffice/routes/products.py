# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
"""
Product catalog routes.

Products are read by carts and by the commit protocol. Stock is never set
here: a new product starts with an empty Stock row that only committed
purchases and sales move.
"""
from flask import Blueprint, request

from ..errors import ValidationError
from ..models import Product
from ..services.products_service import (
    list_products as list_products_service,
    create_product,
    get_product,
)
from ..validation import PayloadPolicy, validate_payload, check_product_prices
from .responses import error_response

PRODUCT_POLICY = PayloadPolicy(
    writable=frozenset({"name", "price_cents", "buy_price_cents"}),
    required=frozenset({"name", "price_cents"}),
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List all products with their on-hand quantity.

    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    return list_products_service(page=page, per_page=per_page)


@products_bp.post("")
def create_product_route():
    """Create a new product with an empty stock row."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        check_product_prices(patch)
    except ValidationError as e:
        return error_response(e)

    return create_product(patch=patch), 201


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    product = get_product(product_id)
    if not product:
        return {"error": "Product not found"}, 404
    return {"product": product.to_dict()}, 200
