"""
Commit protocol tests.

Verifies:
- Purchases add stock and record header plus lines with the cart's prices
- Sales remove stock, charge live prices and record what was collected
- Validation failures are REJECTED with zero writes
- Any failure inside the unit is ABORTED and rolls everything back
- The caller's cart is never modified
"""

import pytest
from sqlalchemy.exc import OperationalError

from backoffice.extensions import db
from backoffice.models import Payment, Product, Purchase, PurchaseLine, Sale, SaleLine
from backoffice.services import commit_service, stock_service
from backoffice.services.cart import CART_PURCHASE, CART_SALE, MAX_LINE_QUANTITY, Cart
from backoffice.services.commit_service import (
    STATE_ABORTED,
    STATE_COMMITTED,
    STATE_MUTATING,
    STATE_REJECTED,
    STATE_RESOLVING,
    STATE_VALIDATING,
    commit_purchase,
    commit_sale,
)
from backoffice.services.products_service import load_catalog

from conftest import quantity_on_hand, row_count


def _purchase_cart(*entries):
    cart = Cart(load_catalog(), kind=CART_PURCHASE)
    for product_id, quantity, price in entries:
        cart.add_item(product_id, quantity, override_price=price)
    return cart


def _sale_cart(*entries):
    cart = Cart(load_catalog(), kind=CART_SALE)
    for product_id, quantity in entries:
        cart.add_item(product_id, quantity)
    return cart


def _assert_no_writes():
    assert row_count(Purchase) == 0
    assert row_count(PurchaseLine) == 0
    assert row_count(Sale) == 0
    assert row_count(SaleLine) == 0
    assert row_count(Payment) == 0


# =============================================================================
# PURCHASES
# =============================================================================


class TestCommitPurchase:
    def test_purchase_adds_stock_and_records_lines(self, db_session, product_a, product_b):
        cart = _purchase_cart((product_a.id, 2, "150"), (product_b.id, 1, "300"))

        result = commit_purchase(cart)

        assert result.ok
        assert result.state == STATE_COMMITTED
        assert result.total_cents == 600
        assert result.error is None

        purchase = db.session.get(Purchase, result.header_id)
        assert purchase.total_value_cents == 600
        assert len(purchase.title) == len("19/10/2026 14:05")
        assert [(l.product_id, l.quantity, l.unit_price_cents, l.line_total_cents) for l in purchase.lines] == [
            (product_a.id, 2, 150, 300),
            (product_b.id, 1, 300, 300),
        ]
        assert quantity_on_hand(product_a.id) == 3
        assert quantity_on_hand(product_b.id) == 6

    def test_purchase_total_equals_sum_of_lines(self, db_session, product_a, product_b):
        cart = _purchase_cart((product_a.id, 7, "1,99"), (product_b.id, 3, None))

        result = commit_purchase(cart)

        purchase = db.session.get(Purchase, result.header_id)
        assert purchase.total_value_cents == sum(l.line_total_cents for l in purchase.lines)
        assert purchase.total_value_cents == 7 * 199 + 3 * 300

    def test_cart_is_left_untouched(self, db_session, product_a):
        cart = _purchase_cart((product_a.id, 2, "150"))
        before = cart.to_dict()

        commit_purchase(cart)

        assert cart.to_dict() == before

    def test_empty_cart_is_rejected_without_writes(self, db_session, product_a):
        result = commit_purchase(Cart(load_catalog(), kind=CART_PURCHASE))

        assert not result.ok
        assert result.state == STATE_REJECTED
        assert result.failed_state == STATE_VALIDATING
        assert result.error.kind == "validation"
        assert result.error.field == "transaction"
        assert result.error.message == "Your cart is empty."
        _assert_no_writes()
        assert quantity_on_hand(product_a.id) == 1

    def test_sale_cart_cannot_be_committed_as_purchase(self, db_session, product_a):
        result = commit_purchase(_sale_cart((product_a.id, 1)))
        assert result.state == STATE_REJECTED
        _assert_no_writes()

    def test_missing_price_aborts_whole_purchase(self, db_session, make_product, product_a):
        no_cost = make_product(name="No Cost", price_cents=500, buy_price_cents=None, quantity=0)
        cart = _purchase_cart((product_a.id, 2, "150"), (no_cost.id, 1, None))

        result = commit_purchase(cart)

        assert result.state == STATE_ABORTED
        assert result.error.kind == "validation"
        assert result.error.field == "price"
        assert result.error.message == "Invalid value for product: No Cost. The minimum amount is 0.01."
        _assert_no_writes()
        assert quantity_on_hand(product_a.id) == 1
        assert quantity_on_hand(no_cost.id) == 0

    def test_product_deleted_after_validation(self, db_session, product_a, monkeypatch):
        cart = _purchase_cart((product_a.id, 2, "150"))
        db_session.delete(db_session.get(Product, product_a.id))
        db_session.commit()
        monkeypatch.setattr(commit_service, "_validate_cart", lambda cart, kind: None)

        result = commit_purchase(cart)

        assert result.state == STATE_ABORTED
        assert result.failed_state == STATE_RESOLVING
        assert result.error.kind == "reference_not_found"
        assert result.error.field == "product_id"
        _assert_no_writes()

    def test_product_deleted_before_commit_is_rejected(self, db_session, product_a, product_b):
        cart = _purchase_cart((product_a.id, 1, "150"), (product_b.id, 1, "300"))
        db_session.delete(db_session.get(Product, product_b.id))
        db_session.commit()

        result = commit_purchase(cart)

        assert result.state == STATE_REJECTED
        assert result.error.field == "product_id"
        assert result.error.message == "Selected product does not exist."
        _assert_no_writes()
        assert quantity_on_hand(product_a.id) == 1

    def test_largest_line_commits(self, db_session, product_a):
        cart = _purchase_cart((product_a.id, MAX_LINE_QUANTITY, "9,999,999.99"))

        result = commit_purchase(cart)

        assert result.ok
        assert result.total_cents == MAX_LINE_QUANTITY * 999_999_999
        assert db_session.get(Purchase, result.header_id).total_value_cents == result.total_cents
        assert quantity_on_hand(product_a.id) == 1 + MAX_LINE_QUANTITY

    @pytest.mark.parametrize(
        "limit,value,field",
        [
            ("MAX_LINE_QUANTITY", 2, "quantity"),
            ("MAX_PRICE_CENTS", 100, "price"),
        ],
    )
    def test_line_over_limit_is_rejected(self, db_session, product_a, monkeypatch, limit, value, field):
        cart = _purchase_cart((product_a.id, 3, "150"))
        monkeypatch.setattr(commit_service, limit, value)

        result = commit_purchase(cart)

        assert result.state == STATE_REJECTED
        assert result.error.field == field
        _assert_no_writes()
        assert quantity_on_hand(product_a.id) == 1


# =============================================================================
# SALES
# =============================================================================


class TestCommitSale:
    def test_immediate_sale_collects_full_value(self, db_session, product_b):
        cart = _sale_cart((product_b.id, 2))

        result = commit_sale(cart)

        assert result.ok
        assert result.total_cents == 5000
        sale = db.session.get(Sale, result.header_id)
        assert sale.is_deferred is False
        assert sale.customer_id is None
        assert sale.sale_value_cents == 5000
        assert sale.paid_value_cents == 5000
        assert sale.payment_status == "PAID"
        assert [p.amount_cents for p in sale.payments] == [5000]
        assert quantity_on_hand(product_b.id) == 3

    def test_deferred_sale_with_partial_payment(self, db_session, make_product, customer):
        product = make_product(name="Widget", price_cents=1000, quantity=5)
        cart = _sale_cart((product.id, 3))

        result = commit_sale(cart, is_deferred=True, customer_id=customer.id, paying_now="500")

        assert result.ok
        sale = db.session.get(Sale, result.header_id)
        assert sale.sale_value_cents == 3000
        assert sale.paid_value_cents == 500
        assert sale.outstanding_cents == 2500
        assert sale.payment_status == "PARTIAL"
        assert sale.customer_id == customer.id
        assert [p.amount_cents for p in sale.payments] == [500]
        assert quantity_on_hand(product.id) == 2

    def test_deferred_sale_with_nothing_paid(self, db_session, product_b, customer):
        result = commit_sale(_sale_cart((product_b.id, 1)), is_deferred=True, customer_id=customer.id, paying_now="")

        assert result.ok
        sale = db.session.get(Sale, result.header_id)
        assert sale.paid_value_cents == 0
        assert sale.payment_status == "UNPAID"
        assert row_count(Payment) == 0

    def test_sale_charges_live_price(self, db_session, product_b):
        cart = _sale_cart((product_b.id, 2))
        assert cart.total_cents == 5000

        product = db_session.get(Product, product_b.id)
        product.price_cents = 2600
        db_session.commit()

        result = commit_sale(cart)

        assert result.total_cents == 5200
        sale = db.session.get(Sale, result.header_id)
        assert sale.lines[0].unit_price_cents == 2600
        assert cart.total_cents == 5000

    def test_insufficient_stock_rolls_back_everything(self, db_session, product_a, product_b):
        # Product B is decremented first, then Product A fails
        cart = _sale_cart((product_b.id, 1), (product_a.id, 2))

        result = commit_sale(cart)

        assert result.state == STATE_ABORTED
        assert result.failed_state == STATE_MUTATING
        assert result.error.kind == "insufficient_stock"
        assert result.error.field == "quantity"
        assert result.error.message == (
            "Product A does not have enough stock for this sale. "
            "Requested quantity: 2, available quantity: 1"
        )
        _assert_no_writes()
        assert quantity_on_hand(product_a.id) == 1
        assert quantity_on_hand(product_b.id) == 5
        assert len(cart) == 2

    def test_deferred_sale_requires_customer(self, db_session, product_b):
        result = commit_sale(_sale_cart((product_b.id, 1)), is_deferred=True)

        assert result.state == STATE_REJECTED
        assert result.error.field == "customer_id"
        assert result.error.message == "A customer is required for deferred sales."
        _assert_no_writes()
        assert quantity_on_hand(product_b.id) == 5

    @pytest.mark.parametrize("paying_now", ["5", "50", "0,00", "abc"])
    def test_paying_now_below_minimum(self, db_session, product_b, customer, paying_now):
        result = commit_sale(
            _sale_cart((product_b.id, 1)),
            is_deferred=True,
            customer_id=customer.id,
            paying_now=paying_now,
        )

        assert result.state == STATE_REJECTED
        assert result.error.field == "paying_now"
        assert result.error.message == "The minimum amount is 0.01. Otherwise, leave it blank."
        _assert_no_writes()

    def test_paying_now_above_sale_value(self, db_session, product_b, customer):
        result = commit_sale(
            _sale_cart((product_b.id, 1)),
            is_deferred=True,
            customer_id=customer.id,
            paying_now="99999",
        )

        assert result.state == STATE_ABORTED
        assert result.error.field == "paying_now"
        _assert_no_writes()
        assert quantity_on_hand(product_b.id) == 5

    def test_paying_now_ignored_for_immediate_sale(self, db_session, product_b):
        result = commit_sale(_sale_cart((product_b.id, 1)), paying_now="5")

        assert result.ok
        assert db.session.get(Sale, result.header_id).paid_value_cents == 2500

    def test_unknown_customer_aborts(self, db_session, product_b):
        result = commit_sale(_sale_cart((product_b.id, 1)), is_deferred=True, customer_id=424242)

        assert result.state == STATE_ABORTED
        assert result.error.kind == "reference_not_found"
        assert result.error.field == "customer_id"
        _assert_no_writes()
        assert quantity_on_hand(product_b.id) == 5

    def test_invalid_customer_id_type(self, db_session, product_b):
        result = commit_sale(_sale_cart((product_b.id, 1)), is_deferred=True, customer_id="7")
        assert result.state == STATE_REJECTED
        assert result.error.field == "customer_id"

    def test_empty_sale_cart(self, db_session):
        result = commit_sale(Cart(load_catalog(), kind=CART_SALE))
        assert result.state == STATE_REJECTED
        assert result.error.message == "Your cart is empty."
        _assert_no_writes()


# =============================================================================
# INFRASTRUCTURE FAILURES
# =============================================================================


class TestPersistenceFailures:
    def test_database_error_is_reported_and_rolled_back(self, db_session, product_a, monkeypatch):
        def broken_increase(*args, **kwargs):
            raise OperationalError("UPDATE stocks", {}, Exception("database is locked"))

        monkeypatch.setattr(stock_service, "increase_stock", broken_increase)

        result = commit_purchase(_purchase_cart((product_a.id, 2, "150")))

        assert result.state == STATE_ABORTED
        assert result.error.kind == "persistence"
        assert result.error.field == "transaction"
        assert result.error.details == {"reason": "OperationalError"}
        _assert_no_writes()
        assert quantity_on_hand(product_a.id) == 1

    def test_transient_error_is_retried(self, app, db_session, product_a, monkeypatch):
        monkeypatch.setitem(app.config, "COMMIT_RETRY_ATTEMPTS", 2)
        real_increase = stock_service.increase_stock
        calls = []

        def flaky_increase(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise OperationalError("UPDATE stocks", {}, Exception("database is locked"))
            return real_increase(*args, **kwargs)

        monkeypatch.setattr(stock_service, "increase_stock", flaky_increase)

        result = commit_purchase(_purchase_cart((product_a.id, 2, "150")))

        assert result.ok
        assert len(calls) == 2
        assert row_count(Purchase) == 1
        assert row_count(PurchaseLine) == 1
        assert quantity_on_hand(product_a.id) == 3
