# Overview: Service-layer commit protocol turning a cart into a durable purchase or sale.

"""
Commit Protocol (authoritative)

One call per submit action. Each commit walks the states

    VALIDATING -> RESOLVING -> MUTATING -> COMMITTED

and ends in REJECTED when validation fails before any write, or ABORTED when
anything fails inside the unit of work (RESOLVING through MUTATING).

- Validation (empty cart, unknown product, quantity or price out of range,
  deferred sale without customer, "paying now" below the minimum) runs before
  the unit is opened.
- Everything else runs inside services.concurrency.atomic_unit: every line
  item, every stock adjustment and the header are written together or not at
  all. The first failure rolls the whole unit back.
- Products are re-read inside the unit. Purchases keep the price captured in
  the cart (operator-entered cost); sales charge the price read here.
- The caller's cart is never touched. On failure it is left intact so the
  operator can correct and resubmit; on success the caller discards it.
- Domain failures are returned as a CommitResult carrying exactly one
  CommitError, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .. import money
from ..errors import (
    BackofficeError,
    PersistenceFailure,
    ReferenceNotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import Product, Purchase, PurchaseLine, Sale, SaleLine
from ..time_utils import header_title
from ..validation import MAX_PRICE_CENTS, is_valid_id
from . import customer_service, payment_service, stock_service
from .cart import CART_PURCHASE, CART_SALE, MAX_LINE_QUANTITY, Cart
from .concurrency import atomic_unit, lock_for_update, run_with_retry


# =============================================================================
# COMMIT STATES (CONSTANTS)
# =============================================================================

STATE_VALIDATING = "VALIDATING"
STATE_RESOLVING = "RESOLVING"
STATE_MUTATING = "MUTATING"
STATE_COMMITTED = "COMMITTED"
STATE_REJECTED = "REJECTED"
STATE_ABORTED = "ABORTED"


@dataclass(frozen=True)
class CommitError:
    kind: str
    field: str
    message: str
    details: dict = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BackofficeError) -> "CommitError":
        return cls(kind=exc.kind, field=exc.field, message=exc.message, details=exc.details)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "field": self.field,
            "kind": self.kind,
            "details": self.details,
        }


@dataclass(frozen=True)
class CommitResult:
    state: str
    header_id: int | None = None
    total_cents: int | None = None
    error: CommitError | None = None
    # State the commit was in when it failed
    failed_state: str | None = None

    @property
    def ok(self) -> bool:
        return self.state == STATE_COMMITTED


class _Progress:
    def __init__(self):
        self.state = STATE_VALIDATING

    def enter(self, state: str) -> None:
        self.state = state


def _fail(kind: str, progress: _Progress, exc: BackofficeError) -> CommitResult:
    final_state = STATE_REJECTED if progress.state == STATE_VALIDATING else STATE_ABORTED
    current_app.logger.warning(
        "%s commit %s in %s: [%s] %s",
        kind, final_state.lower(), progress.state, exc.kind, exc.message,
    )
    return CommitResult(
        state=final_state,
        error=CommitError.from_exception(exc),
        failed_state=progress.state,
    )


def _persistence_failure(exc: SQLAlchemyError) -> PersistenceFailure:
    return PersistenceFailure(
        "The transaction could not be saved. Please try again.",
        details={"reason": type(exc).__name__},
    )


# =============================================================================
# SHARED STEPS
# =============================================================================

def _validate_cart(cart: Cart, expected_kind: str) -> None:
    """Structural checks. No writes happen before these pass."""
    if cart.kind != expected_kind:
        raise ValidationError(f"A {cart.kind} cart cannot be committed as a {expected_kind}.")

    if cart.is_empty:
        raise ValidationError("Your cart is empty.")

    for line in cart.lines:
        if line.quantity < 1:
            raise ValidationError(
                "Quantity must be at least 1.",
                field="quantity",
                details={"product_id": line.product_id},
            )
        if line.quantity > MAX_LINE_QUANTITY:
            raise ValidationError(
                f"The maximum quantity per product is {MAX_LINE_QUANTITY:,}.",
                field="quantity",
                details={"product_id": line.product_id},
            )
        if line.unit_price_cents > MAX_PRICE_CENTS:
            fmt = money.format_from_config(current_app.config)
            raise ValidationError(
                f"The maximum amount is {money.to_display(MAX_PRICE_CENTS, fmt)}.",
                field="price",
                details={"product_id": line.product_id},
            )

    product_ids = {line.product_id for line in cart.lines}
    found = {
        row.id
        for row in db.session.query(Product.id).filter(Product.id.in_(sorted(product_ids))).all()
    }
    missing = sorted(product_ids - found)
    if missing:
        raise ValidationError(
            "Selected product does not exist.",
            field="product_id",
            details={"product_ids": missing},
        )


def _resolve_product(product_id: int) -> Product:
    """Fresh read inside the unit; values captured before it began are not trusted."""
    product = (
        lock_for_update(db.session.query(Product).filter_by(id=product_id))
        .populate_existing()
        .first()
    )
    if product is None:
        raise ReferenceNotFoundError(
            "Product not found, check that it still exists.",
            field="product_id",
            details={"product_id": product_id},
        )
    return product


def _new_title() -> str:
    return header_title(fmt=current_app.config.get("HEADER_TITLE_FORMAT", "%d/%m/%Y %H:%M"))


# =============================================================================
# PURCHASE
# =============================================================================

def _post_purchase_locked(cart: Cart, progress: _Progress) -> Purchase:
    progress.enter(STATE_RESOLVING)
    purchase = Purchase(title=_new_title(), total_value_cents=0)
    db.session.add(purchase)
    db.session.flush()

    total_value = 0
    for cart_line in cart.lines:
        progress.enter(STATE_RESOLVING)
        product = _resolve_product(cart_line.product_id)

        unit_price = cart_line.unit_price_cents
        if not unit_price or unit_price <= 0:
            fmt = money.format_from_config(current_app.config)
            raise ValidationError(
                f"Invalid value for product: {product.name}. {money.minimum_amount_message(fmt)}",
                field="price",
                details={"product_id": product.id},
            )

        progress.enter(STATE_MUTATING)
        line_total = money.multiply(unit_price, cart_line.quantity)
        total_value = money.add(total_value, line_total)

        purchase.lines.append(PurchaseLine(
            product_id=product.id,
            quantity=cart_line.quantity,
            unit_price_cents=unit_price,
            line_total_cents=line_total,
        ))
        db.session.flush()

        stock_service.increase_stock(product.id, cart_line.quantity, product_name=product.name)

    purchase.total_value_cents = total_value
    db.session.flush()
    return purchase


def commit_purchase(cart: Cart) -> CommitResult:
    """
    Commit a purchase cart: add stock, write the lines and the Purchase header.

    Returns a CommitResult; on success header_id is the new Purchase id.
    """
    progress = _Progress()

    def _op():
        with atomic_unit():
            purchase = _post_purchase_locked(cart, progress)
        return purchase.id, purchase.total_value_cents

    try:
        _validate_cart(cart, CART_PURCHASE)
        purchase_id, total_value = run_with_retry(_op)
    except BackofficeError as exc:
        return _fail("Purchase", progress, exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        return _fail("Purchase", progress, _persistence_failure(exc))

    progress.enter(STATE_COMMITTED)
    current_app.logger.info(
        "Purchase %s committed: %d line(s), total_value_cents=%d",
        purchase_id, len(cart), total_value,
    )
    return CommitResult(state=STATE_COMMITTED, header_id=purchase_id, total_cents=total_value)


# =============================================================================
# SALE
# =============================================================================

def _validate_sale_payment(is_deferred: bool, customer_id, paying_now) -> int | None:
    if customer_id is not None and not is_valid_id(customer_id):
        raise ValidationError("Select a valid customer.", field="customer_id")

    if not is_deferred:
        return None

    if not customer_id:
        raise ValidationError("A customer is required for deferred sales.", field="customer_id")

    return payment_service.parse_paying_now(paying_now)


def _post_sale_locked(
    cart: Cart,
    progress: _Progress,
    *,
    is_deferred: bool,
    customer_id: int | None,
    paying_now_cents: int | None,
) -> Sale:
    progress.enter(STATE_RESOLVING)
    if customer_id is not None and customer_service.get_customer(customer_id) is None:
        raise ReferenceNotFoundError(
            "Customer not found, check that it still exists.",
            field="customer_id",
            details={"customer_id": customer_id},
        )

    sale = Sale(title=_new_title(), customer_id=customer_id, is_deferred=is_deferred)
    db.session.add(sale)
    db.session.flush()

    sale_value = 0
    for cart_line in cart.lines:
        progress.enter(STATE_RESOLVING)
        product = _resolve_product(cart_line.product_id)

        # Live pricing: the price read now, not the one shown when the line was added
        unit_price = product.price_cents

        progress.enter(STATE_MUTATING)
        line_total = money.multiply(unit_price, cart_line.quantity)
        sale_value = money.add(sale_value, line_total)

        sale.lines.append(SaleLine(
            product_id=product.id,
            quantity=cart_line.quantity,
            unit_price_cents=unit_price,
            line_total_cents=line_total,
        ))
        db.session.flush()

        stock_service.decrease_stock(product.id, cart_line.quantity, product_name=product.name)

    collected = payment_service.resolve_collected_amount(
        sale_value,
        is_deferred=is_deferred,
        paying_now_cents=paying_now_cents,
    )
    payment_service.record_payment(sale, collected)

    sale.sale_value_cents = sale_value
    sale.paid_value_cents = collected
    db.session.flush()
    return sale


def commit_sale(
    cart: Cart,
    *,
    is_deferred: bool = False,
    customer_id: int | None = None,
    paying_now=None,
) -> CommitResult:
    """
    Commit a sale cart: remove stock, write the lines, the Sale header and,
    when something was collected, its Payment.

    is_deferred: sell on credit. Requires customer_id; paying_now is the
        optional operator input for what is collected right away.
    Returns a CommitResult; on success header_id is the new Sale id.
    """
    progress = _Progress()

    def _op():
        with atomic_unit():
            sale = _post_sale_locked(
                cart,
                progress,
                is_deferred=is_deferred,
                customer_id=customer_id,
                paying_now_cents=paying_now_cents,
            )
        return sale.id, sale.sale_value_cents, sale.paid_value_cents

    try:
        _validate_cart(cart, CART_SALE)
        paying_now_cents = _validate_sale_payment(is_deferred, customer_id, paying_now)
        sale_id, sale_value, paid_value = run_with_retry(_op)
    except BackofficeError as exc:
        return _fail("Sale", progress, exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        return _fail("Sale", progress, _persistence_failure(exc))

    progress.enter(STATE_COMMITTED)
    current_app.logger.info(
        "Sale %s committed: %d line(s), sale_value_cents=%d, paid_value_cents=%d, deferred=%s",
        sale_id, len(cart), sale_value, paid_value, is_deferred,
    )
    return CommitResult(state=STATE_COMMITTED, header_id=sale_id, total_cents=sale_value)
