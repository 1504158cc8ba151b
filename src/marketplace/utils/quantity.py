"""Quantities of goods, in the product's unit (usually kg).

Quantities are fractional and stored as floats. Sums and comparisons go
through ``Decimal`` at gram precision, so ``0.1 + 0.2`` units fit exactly
into a slot with ``0.3`` units left.
"""

from decimal import ROUND_HALF_UP, Decimal

QUANTITY_STEP = Decimal("0.001")
MIN_QUANTITY = float(QUANTITY_STEP)


def to_quantity(value) -> Decimal:
    if value is None:
        return Decimal("0.000")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def add(a, b) -> float:
    return float(to_quantity(a) + to_quantity(b))


def subtract(a, b) -> float:
    """``a - b``, floored at zero."""
    return float(max(to_quantity(a) - to_quantity(b), Decimal("0.000")))


def exceeds(total, limit) -> bool:
    return to_quantity(total) > to_quantity(limit)


def is_positive(value) -> bool:
    return value is not None and to_quantity(value) > 0


def display(value) -> str:
    """``2.5`` -> ``"2.5"``, ``3.0`` -> ``"3"``."""
    return format(to_quantity(value).normalize(), "f")
