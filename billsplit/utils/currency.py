"""Currency display helpers for GBP amounts with their CNY equivalent."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, float, int]

_CENT = Decimal("0.01")


def _to_cents(amount: Number | None) -> Decimal:
    if amount is None:
        return Decimal("0.00")
    return Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)


def format_gbp(amount: Number | None) -> str:
    """Format an amount as pounds sterling, e.g. ``£1,234.50``."""
    value = _to_cents(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}£{abs(value):,.2f}"


def format_cny(amount: Number | None) -> str:
    """Format an amount as Chinese yuan, e.g. ``¥11,110.50``."""
    value = _to_cents(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}¥{abs(value):,.2f}"


def format_both(amount_gbp: Number | None, rate: Number | None) -> str:
    """Format a GBP amount alongside its CNY conversion.

    Args:
        amount_gbp: Amount in GBP
        rate: GBP to CNY exchange rate; a missing rate converts to zero

    Returns:
        String like ``£10.00 / ¥90.00``
    """
    gbp = Decimal(str(amount_gbp or 0))
    cny = gbp * Decimal(str(rate or 0))
    return f"{format_gbp(gbp)} / {format_cny(cny)}"
