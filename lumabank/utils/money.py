"""Money conversion utilities (amounts are stored as integer cents)"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> int:
    """Convert a decimal amount to integer cents, rounding half-up to the cent"""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-place decimal"""
    return (Decimal(cents) / 100).quantize(CENT)
