# Overview: Pure money/quantity arithmetic for transaction totals.

"""
Transaction money math.

quantity(item) prefers weight over pieces:
    weight if present and nonzero, else pieces, else 0

line_total(item) = cents(quantity(item) * price(item))
subtotal(items) = sum(line_total(item))
total(subtotal, expenses) = cents(subtotal) + cents(expenses)

Money is rounded to cents (half up) before it is summed, so the stored
total always equals the stored subtotal plus the stored expenses.

Nothing here validates. A malformed item simply contributes 0 so that the
calculator can be run on anything; rejecting bad input is validation.py's job.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON-ish number to Decimal; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return number if number.is_finite() else ZERO


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def quantity(item: Any) -> Decimal:
    weight = to_decimal(_field(item, "weight"))
    if weight != ZERO:
        return weight
    return to_decimal(_field(item, "pieces"))


def cents(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(item: Any) -> Decimal:
    return cents(quantity(item) * to_decimal(_field(item, "price")))


def subtotal(items: Iterable[Any] | None) -> Decimal:
    return sum((line_total(item) for item in items or ()), ZERO)


def total(subtotal_amount: Any, expenses: Any) -> Decimal:
    return cents(subtotal_amount) + cents(expenses)
