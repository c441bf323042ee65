# Overview: Service-layer operations for payment; how much of a sale was collected now versus deferred.

"""
Payment Tracking

WHY: A sale's value and the amount collected for it are different numbers.
Immediate sales collect the full value. Deferred (on-credit) sales collect
whatever the operator types as "paying now", possibly nothing, and the
remainder is owed by the customer.

DESIGN PRINCIPLES:
- Sale.sale_value_cents is always the full computed value.
- Sale.paid_value_cents is what was collected at commit time.
- A Payment row exists only for a strictly positive collected amount.
"""

from __future__ import annotations

from flask import current_app

from .. import money
from ..errors import ValidationError
from ..extensions import db
from ..models import Payment, Sale
from ..validation import MAX_PRICE_CENTS


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"


def outstanding_cents(sale_value_cents: int, paid_value_cents: int) -> int:
    return max(sale_value_cents - paid_value_cents, 0)


def payment_status(sale_value_cents: int, paid_value_cents: int) -> str:
    if paid_value_cents >= sale_value_cents:
        return PAYMENT_STATUS_PAID
    if paid_value_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


# =============================================================================
# COLLECTION
# =============================================================================

def parse_paying_now(raw) -> int | None:
    """
    Validate the optional "paying now" input of a deferred sale.

    Blank input means nothing is collected now and returns None. Anything else
    must meet the minimum amount rule and is returned as cents.
    """
    if money.is_blank(raw):
        return None
    try:
        ok = money.meets_minimum(raw)
    except TypeError:
        ok = False
    fmt = money.format_from_config(current_app.config)
    if not ok:
        raise ValidationError(
            f"{money.minimum_amount_message(fmt)} Otherwise, leave it blank.",
            field="paying_now",
        )
    if money.exceeds(raw, MAX_PRICE_CENTS):
        raise ValidationError(
            f"The maximum amount is {money.to_display(MAX_PRICE_CENTS, fmt)}.",
            field="paying_now",
        )
    return money.from_user_input(raw)


def resolve_collected_amount(
    sale_value_cents: int,
    *,
    is_deferred: bool,
    paying_now_cents: int | None = None,
) -> int:
    """
    Amount actually collected when the sale is committed.

    - Immediate payment: the full sale value.
    - Deferred payment: the "paying now" amount, or 0 when none was given.
      It may not exceed the sale value.
    """
    if not is_deferred:
        return sale_value_cents

    collected = paying_now_cents or 0
    if collected > sale_value_cents:
        fmt = money.format_from_config(current_app.config)
        raise ValidationError(
            f"Paying now ({money.to_display(collected, fmt)}) cannot exceed "
            f"the sale value ({money.to_display(sale_value_cents, fmt)}).",
            field="paying_now",
            details={"paying_now_cents": collected, "sale_value_cents": sale_value_cents},
        )
    return collected


def record_payment(sale: Sale, amount_cents: int) -> Payment | None:
    """Attach a Payment to the sale when amount_cents > 0. Does not commit."""
    if amount_cents <= 0:
        return None

    payment = Payment(amount_cents=amount_cents)
    sale.payments.append(payment)
    db.session.add(payment)
    return payment
