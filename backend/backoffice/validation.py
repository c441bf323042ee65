# Overview: Request payload checks driven by SQLAlchemy column metadata.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable

from sqlalchemy import Boolean, Date, Integer, String, Text

from .errors import ValidationError


# Largest price a product may carry: 9,999,999.99
MAX_PRICE_CENTS = 999_999_999

# Primary keys are signed 64-bit
MAX_ID = 2 ** 63 - 1


def is_valid_id(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, int) and 0 < value <= MAX_ID


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Which columns a client may send for one model.

    writable: keys accepted at all; anything else is rejected by name.
    required: keys that must be present when creating a row.
    """
    writable: frozenset[str]
    required: frozenset[str] = field(default_factory=frozenset)


def _to_int(key: str, value: Any) -> int:
    # bool is an int subclass and floats would carry fractions of a cent
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be an integer", field=key)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        sign = text[:1] if text[:1] in "+-" else ""
        digits = text[len(sign):]
        if digits.isdecimal():
            if len(digits.lstrip("0")) > 18:
                raise ValidationError(f"{key} is out of range", field=key)
            return int(text)
    raise ValidationError(f"{key} must be an integer", field=key)


def to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{key} must be true or false", field=key)


def _to_date(key: str, value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)", field=key)


def _to_text(key: str, value: Any) -> str:
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{key} must be text", field=key)
    return str(value).strip()


_COERCERS: tuple[tuple[type | tuple[type, ...], Callable[[str, Any], Any]], ...] = (
    (Boolean, to_bool),
    (Integer, _to_int),
    (Date, _to_date),
    ((String, Text), _to_text),
)


def _coerce(column, value: Any) -> Any:
    for column_type, coerce in _COERCERS:
        if isinstance(column.type, column_type):
            return coerce(column.key, value)
    return value


def validate_payload(*, model, payload, policy: PayloadPolicy, partial: bool) -> dict:
    """
    Clean a JSON body into a dict of column values for `model`.

    - keys outside policy.writable are rejected
    - with partial=False every policy.required key must be present
    - values are coerced by column type; nulls only where the column allows
    - blank text is rejected for non-nullable columns, long text for String(n)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    if not partial:
        missing = sorted(policy.required - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

    columns = {c.key: c for c in model.__mapper__.columns}
    cleaned: dict = {}

    for key, raw in payload.items():
        column = columns.get(key)
        if key not in policy.writable or column is None:
            raise ValidationError(f"Field not allowed: {key}", field=key)

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null", field=key)
            cleaned[key] = None
            continue

        value = _coerce(column, raw)

        if isinstance(value, str):
            if value == "" and not column.nullable:
                raise ValidationError(f"{key} cannot be blank", field=key)
            limit = getattr(column.type, "length", None)
            if limit and len(value) > limit:
                raise ValidationError(f"{key} exceeds max length {limit}", field=key)

        cleaned[key] = value

    return cleaned


def check_product_prices(patch: dict) -> None:
    """Prices are whole cents between 0 and MAX_PRICE_CENTS."""
    for key in ("price_cents", "buy_price_cents"):
        price = patch.get(key)
        if price is None:
            continue
        if price < 0:
            raise ValidationError(f"{key} must be >= 0", field=key)
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}", field=key)
