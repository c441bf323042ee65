# backend/backoffice/services/products_service.py
"""
Products Service

Read side of the product catalog plus product creation. The commit protocol
only ever reads products; prices change through this module, stock through
services.stock_service.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Product, Stock
from ..validation import is_valid_id
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {"name", "price_cents", "buy_price_cents"}


@dataclass(frozen=True)
class CatalogProduct:
    """Immutable product snapshot a cart is built against."""
    id: int
    name: str
    price_cents: int
    buy_price_cents: int | None
    quantity_on_hand: int


def _snapshot(product: Product) -> CatalogProduct:
    return CatalogProduct(
        id=product.id,
        name=product.name,
        price_cents=product.price_cents,
        buy_price_cents=product.buy_price_cents,
        quantity_on_hand=product.stock.quantity if product.stock else 0,
    )


def load_catalog() -> dict[int, CatalogProduct]:
    """
    Snapshot every product with its stock, keyed by id.

    Loaded once when a cart is opened; the commit protocol re-reads each
    product inside its own unit of work.
    """
    products = (
        db.session.query(Product)
        .outerjoin(Stock)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return {p.id: _snapshot(p) for p in products}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(page: int | None = None, per_page: int | None = None) -> dict:
    """Product listing, ordered by name, with optional pagination."""
    base_query = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc())
    return paginate(base_query, page=page, per_page=per_page)


def get_product(product_id: int) -> Product | None:
    if not is_valid_id(product_id):
        return None
    return db.session.get(Product, product_id)


def create_product(*, patch: dict) -> dict:
    """
    Create a product using a validated patch dict.

    The product's Stock row is created in the same transaction, empty.
    Stock only grows through committed purchases.
    """
    p = Product()
    apply_product_patch(p, patch)
    p.stock = Stock(quantity=0)

    db.session.add(p)
    db.session.commit()
    return p.to_dict()
