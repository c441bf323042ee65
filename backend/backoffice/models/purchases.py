from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Purchase(db.Model):
    """
    Purchase header (stock inbound).

    Written exactly once by services.commit_service.commit_purchase.
    total_value_cents is always the sum of the line totals; it is never
    entered by the operator.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable label (e.g., "19/10/2026 14:05")
    title = db.Column(db.String(64), nullable=False, index=True)

    total_value_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "PurchaseLine",
        back_populates="purchase",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PurchaseLine.id",
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} title={self.title!r} total_value_cents={self.total_value_cents}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "total_value_cents": self.total_value_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    """Individual line item on a purchase. Immutable once created."""
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(
        db.Integer,
        db.ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Operator-entered cost, frozen when the cart line was created
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    purchase = db.relationship("Purchase", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }
