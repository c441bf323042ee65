# Overview: In-memory cart of purchase/sale lines with live subtotal and total recalculation.

"""
Cart

WHY: Operators build a purchase or a sale line by line before committing it.
The cart is transient: it lives for one interaction, is never persisted, and
is discarded by the caller after a successful commit or a cancellation.

RULES:
- At most one line per product. Adding a product already in the cart merges
  quantities into the existing line; its unit price is left untouched.
- Quantity is always between 1 and MAX_LINE_QUANTITY. Decreasing a line
  below 1 removes it. Purchase prices stay at or under MAX_PRICE_CENTS.
- Line indices are positional and compact: removing a line shifts the ones
  after it down by one.
- total_cents is derived from the lines after every mutation and cannot be set.

PRICING:
- Purchase carts take the operator-entered price (override_price) when given,
  otherwise the product's default buy price. That price is frozen on the line.
- Sale carts always take the product's current selling price.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, Mapping

from .. import money
from ..errors import ValidationError
from ..validation import MAX_PRICE_CENTS
from .products_service import CatalogProduct

CART_PURCHASE = "purchase"
CART_SALE = "sale"

# Largest quantity one line may carry
MAX_LINE_QUANTITY = 100_000

VALID_CART_KINDS = (CART_PURCHASE, CART_SALE)


class CartError(ValidationError):
    """
    Raised by Cart.add_item when the input is rejected. The cart is unchanged.

    errors maps each offending field to its message; the first one is also the
    exception's own field/message.
    """

    def __init__(self, errors: dict[str, str]):
        field, message = next(iter(errors.items()))
        super().__init__(message, field=field, details={"errors": dict(errors)})
        self.errors = dict(errors)


@dataclass(frozen=True)
class CartLine:
    product_id: int
    product_name: str
    quantity: int
    unit_price_cents: int

    @property
    def subtotal_cents(self) -> int:
        return money.multiply(self.unit_price_cents, self.quantity)

    def to_dict(self, fmt: money.MoneyFormat = money.DEFAULT_FORMAT) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_price_display": money.to_display(self.unit_price_cents, fmt),
            "subtotal_cents": self.subtotal_cents,
            "subtotal_display": money.to_display(self.subtotal_cents, fmt),
        }


def _max_quantity_message() -> str:
    return f"The maximum quantity per product is {MAX_LINE_QUANTITY:,}."


def _max_price_message(fmt: money.MoneyFormat) -> str:
    return f"The maximum amount is {money.to_display(MAX_PRICE_CENTS, fmt)}."


def _as_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        text = value.strip().lstrip("0") or "0"
        # Longer than any limit allows
        if len(text) > 18:
            return 10 ** 18
        return int(text)
    return None


class Cart:
    def __init__(
        self,
        catalog: Mapping[int, CatalogProduct],
        kind: str = CART_SALE,
        fmt: money.MoneyFormat = money.DEFAULT_FORMAT,
    ):
        if kind not in VALID_CART_KINDS:
            raise ValueError(f"Invalid cart kind: {kind}. Must be one of {VALID_CART_KINDS}")
        self.catalog = catalog
        self.kind = kind
        self.fmt = fmt
        self._lines: list[CartLine] = []
        self._total_cents = 0

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def total_cents(self) -> int:
        return self._total_cents

    @property
    def total_display(self) -> str:
        return money.to_display(self._total_cents, self.fmt)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def line_index(self, product_id: int) -> int | None:
        for index, line in enumerate(self._lines):
            if line.product_id == product_id:
                return index
        return None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "lines": [line.to_dict(self.fmt) for line in self._lines],
            "line_count": len(self._lines),
            "total_cents": self._total_cents,
            "total_display": self.total_display,
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_item(self, product_id, quantity=1, override_price=None) -> int:
        """
        Add quantity of a product, merging into its existing line if present.

        Returns the index of the affected line. Raises CartError, leaving the
        cart unchanged, when the product is unknown, the quantity is outside
        1..MAX_LINE_QUANTITY (merged total included) or the override price is
        rejected.
        """
        errors: dict[str, str] = {}

        pid = _as_int(product_id)
        if not pid:
            errors["product_id"] = "Select a valid product."

        qty = _as_int(quantity)
        if qty is None or qty < 1:
            errors["quantity"] = "Enter a valid quantity."
        elif qty > MAX_LINE_QUANTITY:
            errors["quantity"] = _max_quantity_message()

        has_override = not money.is_blank(override_price)
        if has_override and self.kind == CART_SALE:
            errors["price"] = "Sale prices always follow the product's current price."
        elif has_override:
            try:
                ok = money.meets_minimum(override_price)
            except TypeError:
                ok = False
            if not ok:
                errors["price"] = money.minimum_amount_message(self.fmt)
            elif money.exceeds(override_price, MAX_PRICE_CENTS):
                errors["price"] = _max_price_message(self.fmt)

        if errors:
            raise CartError(errors)

        product = self.catalog.get(pid)
        if product is None:
            raise CartError({"product_id": "Selected product does not exist."})

        index = self.line_index(pid)
        if index is not None:
            line = self._lines[index]
            if line.quantity + qty > MAX_LINE_QUANTITY:
                raise CartError({"quantity": _max_quantity_message()})
            self._lines[index] = replace(line, quantity=line.quantity + qty)
        else:
            if self.kind == CART_SALE:
                unit_price = product.price_cents
            elif has_override:
                unit_price = money.from_user_input(override_price)
            else:
                unit_price = product.buy_price_cents or 0

            self._lines.append(CartLine(
                product_id=pid,
                product_name=product.name,
                quantity=qty,
                unit_price_cents=unit_price,
            ))
            index = len(self._lines) - 1

        self.recompute_total()
        return index

    def increase_quantity(self, index: int) -> None:
        line = self._line(index)
        if line.quantity >= MAX_LINE_QUANTITY:
            raise CartError({"quantity": _max_quantity_message()})
        self._lines[index] = replace(line, quantity=line.quantity + 1)
        self.recompute_total()

    def decrease_quantity(self, index: int) -> None:
        line = self._line(index)
        if line.quantity > 1:
            self._lines[index] = replace(line, quantity=line.quantity - 1)
            self.recompute_total()
        else:
            self.remove_item(index)

    def remove_item(self, index: int) -> None:
        self._line(index)
        del self._lines[index]
        self.recompute_total()

    def clear(self) -> None:
        self._lines.clear()
        self.recompute_total()

    def recompute_total(self) -> int:
        self._total_cents = money.total(line.subtotal_cents for line in self._lines)
        return self._total_cents

    def _line(self, index: int) -> CartLine:
        # Indices always come from the current cart state; anything else is a bug
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._lines):
            raise IndexError(f"No cart line at index {index!r}")
        return self._lines[index]


def build_cart(
    catalog: Mapping[int, CatalogProduct],
    kind: str,
    items,
    fmt: money.MoneyFormat = money.DEFAULT_FORMAT,
) -> Cart:
    """
    Replay a list of {"product_id", "quantity", "buy_value"?} entries through
    Cart.add_item, so merging and validation apply exactly as they do when an
    operator adds lines one by one.

    Raises CartError on the first rejected entry, with its position in details.
    """
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items must be a list", field="items")

    cart = Cart(catalog, kind=kind, fmt=fmt)
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{position}] must be an object", field="items")
        try:
            cart.add_item(
                item.get("product_id"),
                item.get("quantity", 1),
                override_price=item.get("buy_value"),
            )
        except CartError as exc:
            exc.details["position"] = position
            raise
    return cart
