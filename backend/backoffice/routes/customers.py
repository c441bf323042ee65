# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request

from ..errors import ValidationError
from ..models import Customer
from ..services.customer_service import list_customers, create_customer
from ..validation import PayloadPolicy, validate_payload
from .responses import error_response

CUSTOMER_POLICY = PayloadPolicy(
    writable=frozenset({"name", "phone", "birthday"}),
    required=frozenset({"name"}),
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    return list_customers(page=page, per_page=per_page)


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    except ValidationError as e:
        return error_response(e)

    return create_customer(patch=patch), 201
