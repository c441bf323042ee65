from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale header (stock outbound).

    sale_value_cents is the full value of the lines at live prices.
    paid_value_cents is what was collected at commit time; on a deferred
    (on-credit) sale it may be lower, down to zero, and the remainder is owed
    by the linked customer.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created", "created_at"),
        db.Index("ix_sales_customer_deferred", "customer_id", "is_deferred"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable label (e.g., "19/10/2026 14:05")
    title = db.Column(db.String(64), nullable=False, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    is_deferred = db.Column(db.Boolean, nullable=False, default=False)

    # Payment tracking (all amounts in cents)
    sale_value_cents = db.Column(db.BigInteger, nullable=False, default=0)
    paid_value_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleLine.id",
    )
    payments = db.relationship(
        "Payment",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Payment.id",
    )

    @property
    def outstanding_cents(self) -> int:
        from ..services.payment_service import outstanding_cents
        return outstanding_cents(self.sale_value_cents, self.paid_value_cents)

    @property
    def payment_status(self) -> str:
        from ..services.payment_service import payment_status
        return payment_status(self.sale_value_cents, self.paid_value_cents)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} title={self.title!r} sale_value_cents={self.sale_value_cents}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "customer_id": self.customer_id,
            "is_deferred": self.is_deferred,
            "sale_value_cents": self.sale_value_cents,
            "paid_value_cents": self.paid_value_cents,
            "outstanding_cents": self.outstanding_cents,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class SaleLine(db.Model):
    """Individual line item on a sale. Immutable once created."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer,
        db.ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Product price as read inside the commit unit
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Amount collected for a sale.

    Only created when something was actually collected (amount > 0).
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer,
        db.ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Amount collected (in cents)
    amount_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    sale = db.relationship("Sale", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }
