"""
Money and quantity arithmetic.

All amounts are integer cents. Quantities and weights are Decimals with up
to three places (kg). Rounding is nearest-cent, half-up.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

QUANTITY_PLACES = Decimal("0.001")
# Numeric(12, 3) columns hold at most nine integer digits.
MAX_QUANTITY = Decimal("999999999.999")


def to_quantity(value) -> Decimal:
    """Coerce a JSON number/string into a three-place Decimal."""
    if isinstance(value, bool):
        raise ValueError("invalid quantity")
    try:
        qty = Decimal(str(value))
        if not qty.is_finite() or abs(qty) > MAX_QUANTITY:
            raise ValueError(f"invalid quantity: {value!r}")
        return qty.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError):
        raise ValueError(f"invalid quantity: {value!r}")


def round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def multiply_cents(unit_cents: int, quantity: Decimal) -> int:
    """unit price × quantity (or weight), rounded to the cent."""
    return round_cents(Decimal(unit_cents) * quantity)


def percent_of(amount_cents: int, rate_bps: int) -> int:
    """amount × rate, with the rate in basis points (1200 = 12%)."""
    return round_cents(Decimal(amount_cents) * Decimal(rate_bps) / Decimal(10000))


def qty_str(value) -> str | None:
    """Serialize a quantity without exponent notation or float drift."""
    if value is None:
        return None
    return format(Decimal(value).normalize(), "f")
