# Overview: Error taxonomy shared by carts, the stock ledger and the commit protocol.

from __future__ import annotations


GENERAL_FIELD = "transaction"


class BackofficeError(Exception):
    """
    Base for every domain failure surfaced to a caller.

    Each error is attached to one field (e.g. "product_id", "quantity",
    "price", "paying_now") so the presentation layer can render it next to
    the input that caused it. Errors without a natural field attach to
    GENERAL_FIELD.
    """
    kind = "error"

    def __init__(self, message: str, *, field: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.field = field or GENERAL_FIELD
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "field": self.field,
            "kind": self.kind,
            "details": self.details,
        }


class ValidationError(BackofficeError, ValueError):
    """Malformed or missing input. Reported before any write is attempted."""
    kind = "validation"


class InsufficientStockError(BackofficeError):
    """A sale would drive a product's on-hand quantity below zero."""
    kind = "insufficient_stock"

    def __init__(self, product_name: str, requested: int, available: int, *, product_id: int | None = None):
        message = (
            f"{product_name} does not have enough stock for this sale. "
            f"Requested quantity: {requested}, available quantity: {available}"
        )
        super().__init__(
            message,
            field="quantity",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.product_name = product_name
        self.requested = requested
        self.available = available


class ReferenceNotFoundError(BackofficeError):
    """A product, stock row or customer referenced by id no longer exists."""
    kind = "reference_not_found"


class PersistenceFailure(BackofficeError):
    """The atomic unit could not be committed for infrastructural reasons."""
    kind = "persistence"
