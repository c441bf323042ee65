# Overview: Exact integer money arithmetic, display formatting and operator-input parsing.

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping

"""
Money Invariants (authoritative)

- Every amount is an int count of cents (minor units). Floats never enter.
- add/multiply stay integer; there is no rounding step anywhere.
- Display strings always carry exactly DECIMAL_PLACES fractional digits.
- Operator input is parsed by stripping every non-digit and reading the
  remainder as cents: "5" is 5 cents, "12,50" and "12.50" are both 1250.
  This is the documented convention, not a rounding behaviour.
- An input below MIN_INPUT_DIGITS digits (or equal to zero) is under the
  minimum amount of 0.01 and must be rejected by the caller.
"""

DECIMAL_PLACES = 2
MIN_INPUT_DIGITS = DECIMAL_PLACES + 1

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class MoneyFormat:
    """Separators used when rendering cents for humans."""
    decimal_separator: str = "."
    thousands_separator: str = ","


DEFAULT_FORMAT = MoneyFormat()


def format_from_config(config: Mapping) -> MoneyFormat:
    return MoneyFormat(
        decimal_separator=config.get("MONEY_DECIMAL_SEPARATOR", DEFAULT_FORMAT.decimal_separator),
        thousands_separator=config.get("MONEY_THOUSANDS_SEPARATOR", DEFAULT_FORMAT.thousands_separator),
    )


def _require_int(value, name: str) -> int:
    # bool is an int subclass; floats would reintroduce drift
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer number of cents, got {type(value).__name__}")
    return value


def add(a: int, b: int) -> int:
    return _require_int(a, "a") + _require_int(b, "b")


def multiply(unit_cents: int, quantity: int) -> int:
    return _require_int(unit_cents, "unit_cents") * _require_int(quantity, "quantity")


def total(values: Iterable[int]) -> int:
    result = 0
    for value in values:
        result = add(result, value)
    return result


def to_display(value: int, fmt: MoneyFormat = DEFAULT_FORMAT) -> str:
    """
    Render cents with a fixed two-digit fraction and grouped thousands.

    >>> to_display(123456)
    '1,234.56'
    >>> to_display(5)
    '0.05'
    """
    value = _require_int(value, "value")
    major, minor = divmod(abs(value), 10 ** DECIMAL_PLACES)
    grouped = f"{major:,}".replace(",", fmt.thousands_separator)
    text = f"{grouped}{fmt.decimal_separator}{minor:0{DECIMAL_PLACES}d}"
    return f"-{text}" if value < 0 else text


def multiply_display(unit_cents: int, quantity: int, fmt: MoneyFormat = DEFAULT_FORMAT) -> str:
    return to_display(multiply(unit_cents, quantity), fmt)


def input_digits(raw) -> str:
    """Digits left in operator input once everything else is stripped."""
    if raw is None:
        return ""
    if isinstance(raw, (bool, float)):
        raise TypeError("money input must be text or an integer number of cents")
    return _NON_DIGITS.sub("", str(raw))


def from_user_input(raw) -> int:
    """
    Parse operator input into cents. Input with no digits parses to 0.

    No decimal point is interpreted: "1.234,56", "1,234.56" and "123456"
    all parse to 123456.
    """
    digits = input_digits(raw)
    return int(digits) if digits else 0


def is_blank(raw) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def meets_minimum(raw) -> bool:
    """True when the input parses to at least 0.01 with the full cents digits typed."""
    digits = input_digits(raw)
    return len(digits) >= MIN_INPUT_DIGITS and digits.strip("0") != ""


def exceeds(raw, limit_cents: int) -> bool:
    """True when the input parses to more than limit_cents. Safe on any input length."""
    digits = input_digits(raw).lstrip("0")
    if len(digits) > len(str(limit_cents)):
        return True
    return bool(digits) and int(digits) > limit_cents


def minimum_amount_message(fmt: MoneyFormat = DEFAULT_FORMAT) -> str:
    return f"The minimum amount is {to_display(1, fmt)}."
