from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    PRICES:
    - price_cents is the current selling price. Sales always charge it as read
      inside the commit unit, never a value captured earlier.
    - buy_price_cents is the default purchase cost offered to the operator when
      a purchase cart is built. The operator may override it per purchase.

    STOCK: exactly one Stock row per product, created together with it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    buy_price_cents = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    stock = db.relationship(
        "Stock",
        back_populates="product",
        uselist=False,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} price_cents={self.price_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "buy_price_cents": self.buy_price_cents,
            "quantity_on_hand": self.stock.quantity if self.stock else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Stock(db.Model):
    """
    On-hand quantity for one product.

    The only row mutated by both purchases (increment) and sales (decrement).
    Writes go through services.stock_service; the CHECK constraint is the
    last line that keeps quantity from going negative.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="stock")

    def __repr__(self) -> str:
        return f"<Stock product_id={self.product_id} quantity={self.quantity}>"


class Customer(db.Model):
    """
    Party a deferred (on-credit) sale is charged to.

    Read-only from the commit protocol's point of view.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    birthday = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "birthday": self.birthday.isoformat() if self.birthday else None,
            "created_at": to_utc_z(self.created_at),
        }
