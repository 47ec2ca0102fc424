"""Whole-unit money arithmetic (RWF has no minor unit)."""

from decimal import ROUND_HALF_UP, Decimal

HUNDRED = Decimal("100")


def round_money(value: Decimal | int) -> int:
    """Round half up to a whole currency unit."""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int | Decimal, percent: Decimal | int) -> int:
    return round_money(Decimal(amount) * Decimal(percent) / HUNDRED)
