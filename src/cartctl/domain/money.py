"""Decimal money helpers shared by the resolver and totals calculator."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

HUNDRED = Decimal(100)
ZERO = Decimal(0)


def quantize(amount: Decimal, places: int = 2) -> Decimal:
    """Round *amount* half-up to *places* decimal places.

    Examples:
        >>> quantize(Decimal("4.505"))
        Decimal('4.51')
        >>> quantize(Decimal("8"), 2)
        Decimal('8.00')
    """
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def apply_percent(price: Decimal, percent_off: Decimal) -> Decimal:
    """Unit price after taking *percent_off* percent off (unrounded)."""
    return price * (HUNDRED - percent_off) / HUNDRED


def valid_percent(percent: Decimal) -> bool:
    """True for a finite percentage in ``(0, 100]``."""
    return percent.is_finite() and ZERO < percent <= HUNDRED


def format_percent(percent: Decimal) -> str:
    """Render a percentage without trailing zeros.

    Examples:
        >>> format_percent(Decimal("20.00"))
        '20'
        >>> format_percent(Decimal("12.50"))
        '12.5'
    """
    if percent == percent.to_integral_value():
        return format(percent.to_integral_value(), "f")
    return format(percent.normalize(), "f")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce user or file input to Decimal, going through ``str`` for floats.

    Raises:
        decimal.InvalidOperation: *value* is not a number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)
