"""Money helpers.

Amounts are stored as floats rounded to cents, the way the rest of the
domain stores prices. The gateway speaks minor units (integer cents).
"""

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_money(amount: float) -> float:
    """Round an amount to cents, half-up."""
    return float(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (dollars) to minor units (cents)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def order_total(subtotal: float, discount: float, tax: float, shipping: float) -> float:
    """Grand total as charged: never negative."""
    return round_money(max(0.0, subtotal - discount + tax + shipping))
