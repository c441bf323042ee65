"""
Payment tracking tests.
"""

import pytest

from backoffice.errors import ValidationError
from backoffice.services import payment_service
from backoffice.services.payment_service import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
)


class TestCollectedAmount:
    def test_immediate_collects_full_value(self, app):
        assert payment_service.resolve_collected_amount(3000, is_deferred=False) == 3000
        assert payment_service.resolve_collected_amount(3000, is_deferred=False, paying_now_cents=500) == 3000

    def test_deferred_collects_paying_now(self, app):
        assert payment_service.resolve_collected_amount(3000, is_deferred=True, paying_now_cents=500) == 500
        assert payment_service.resolve_collected_amount(3000, is_deferred=True, paying_now_cents=3000) == 3000

    def test_deferred_without_paying_now_collects_nothing(self, app):
        assert payment_service.resolve_collected_amount(3000, is_deferred=True) == 0

    def test_paying_now_cannot_exceed_sale_value(self, app):
        with pytest.raises(ValidationError) as exc:
            payment_service.resolve_collected_amount(3000, is_deferred=True, paying_now_cents=3001)
        assert exc.value.field == "paying_now"
        assert exc.value.message == "Paying now (30.01) cannot exceed the sale value (30.00)."


class TestParsePayingNow:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank(self, app, raw):
        assert payment_service.parse_paying_now(raw) is None

    def test_digits_are_cents(self, app):
        assert payment_service.parse_paying_now("5,00") == 500

    @pytest.mark.parametrize("raw", ["5", "10", "000", 1.5])
    def test_below_minimum(self, app, raw):
        with pytest.raises(ValidationError) as exc:
            payment_service.parse_paying_now(raw)
        assert exc.value.field == "paying_now"

    @pytest.mark.parametrize("raw", ["10.000.000,00", "9" * 30, "9" * 5000])
    def test_above_maximum(self, app, raw):
        with pytest.raises(ValidationError) as exc:
            payment_service.parse_paying_now(raw)
        assert exc.value.field == "paying_now"
        assert exc.value.message == "The maximum amount is 9,999,999.99."

    def test_maximum_is_accepted(self, app):
        assert payment_service.parse_paying_now("9,999,999.99") == 999_999_999


class TestPaymentStatus:
    @pytest.mark.parametrize(
        "sale_value,paid,status,outstanding",
        [
            (3000, 3000, PAYMENT_STATUS_PAID, 0),
            (3000, 500, PAYMENT_STATUS_PARTIAL, 2500),
            (3000, 0, PAYMENT_STATUS_UNPAID, 3000),
        ],
    )
    def test_status(self, sale_value, paid, status, outstanding):
        assert payment_service.payment_status(sale_value, paid) == status
        assert payment_service.outstanding_cents(sale_value, paid) == outstanding
