"""Decimal helpers shared by the calculation stages."""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Brokerage feeds use -1 for "value not available"
SENTINEL = Decimal("-1")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a raw numeric value to Decimal; None when missing or unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if "," in value and "." not in value:
            value = value.replace(",", ".")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def valid_amount(value: Any) -> Optional[Decimal]:
    """Return the Decimal value unless it is missing or the -1 sentinel."""
    amount = to_decimal(value)
    if amount is None or amount == SENTINEL:
        return None
    return amount


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero when the denominator is zero."""
    if denominator == ZERO:
        return ZERO
    return numerator / denominator


def percent_of(amount: Decimal, base: Decimal) -> Decimal:
    """Return amount as a percentage of base; zero when base is not positive."""
    if base <= ZERO:
        return ZERO
    return amount / base * HUNDRED
