# Overview: Service-layer operations for customers; lookup for deferred sales.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..validation import is_valid_id
from .pagination import paginate

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "birthday"}


def list_customers(page: int | None = None, per_page: int | None = None) -> dict:
    base_query = db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc())
    return paginate(base_query, page=page, per_page=per_page)


def get_customer(customer_id: int) -> Customer | None:
    if not is_valid_id(customer_id):
        return None
    return db.session.get(Customer, customer_id)


def create_customer(*, patch: dict) -> dict:
    customer = Customer()
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)

    db.session.add(customer)
    db.session.commit()
    return customer.to_dict()
