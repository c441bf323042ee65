# Overview: Service-layer operations for stock; guarded increment/decrement of on-hand quantity.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..errors import InsufficientStockError, ReferenceNotFoundError, ValidationError
from ..models import Product, Stock
"""
Stock Ledger Invariants (authoritative)

- Stock.quantity is a non-negative integer after every committed transaction.
- Purchases increase unconditionally; sales decrease conditionally.
- The decrement is one conditional UPDATE (decrement-if-available), so two
  concurrent sales can never both read "enough" and both drive the row past
  zero, even under read-committed isolation.
- Nothing here commits. Callers run these inside services.concurrency.atomic_unit
  and an InsufficientStockError aborts the whole unit, not just one line.
"""


def _require_positive_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Quantity must be at least 1.", field="quantity")


def _product_name(product_id: int, product_name: str | None) -> str:
    if product_name:
        return product_name
    product = db.session.get(Product, product_id)
    return product.name if product else f"#{product_id}"


def get_stock(product_id: int) -> Stock | None:
    return (
        db.session.query(Stock)
        .filter_by(product_id=product_id)
        .populate_existing()
        .first()
    )


def get_quantity_on_hand(product_id: int) -> int:
    stock = get_stock(product_id)
    if stock is None:
        raise ReferenceNotFoundError(f"Stock not found for product #{product_id}.", field="product_id")
    return int(stock.quantity)


def increase_stock(product_id: int, quantity: int, *, product_name: str | None = None) -> None:
    """Purchase path: add quantity to the product's stock."""
    _require_positive_quantity(quantity)

    result = db.session.execute(
        update(Stock)
        .where(Stock.product_id == product_id)
        .values(quantity=Stock.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ReferenceNotFoundError(
            f"Could not load stock for product: {_product_name(product_id, product_name)}",
            field="product_id",
            details={"product_id": product_id},
        )


def decrease_stock(product_id: int, quantity: int, *, product_name: str | None = None) -> None:
    """
    Sale path: remove quantity from the product's stock if enough is on hand.

    Raises InsufficientStockError naming the product, the requested and the
    available quantity when available - quantity < 0.
    """
    _require_positive_quantity(quantity)

    result = db.session.execute(
        update(Stock)
        .where(Stock.product_id == product_id, Stock.quantity >= quantity)
        .values(quantity=Stock.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    name = _product_name(product_id, product_name)
    stock = get_stock(product_id)
    if stock is None:
        raise ReferenceNotFoundError(
            f"Could not load stock for product: {name}",
            field="product_id",
            details={"product_id": product_id},
        )
    raise InsufficientStockError(name, quantity, int(stock.quantity), product_id=product_id)
