"""Decimal helpers for asset amounts.

Amounts travel as decimal strings and are never converted to float.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Union

from routeswap.errors import ValidationError

# Mixin assets carry 8 decimal places
AMOUNT_PLACES = 8

AmountLike = Union[Decimal, str, int]


def to_decimal(value: AmountLike) -> Decimal:
    """Parse an amount.

    Raises:
        ValidationError: If the value is not a finite decimal
    """
    if isinstance(value, float):
        raise ValidationError(f"Amounts must not be floats: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount


def quantize_down(amount: Decimal, places: int = AMOUNT_PLACES) -> Decimal:
    """Truncate to the asset precision (never rounds up past a balance)."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)


def format_amount(amount: AmountLike, places: int = AMOUNT_PLACES) -> str:
    """Render an amount as a plain decimal string without exponent or trailing zeros."""
    text = format(quantize_down(to_decimal(amount), places), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def percentage_of(amount: AmountLike, percentage: AmountLike, places: int = AMOUNT_PLACES) -> Decimal:
    """Compute amount * percentage / 100 truncated to the asset precision."""
    return quantize_down(to_decimal(amount) * to_decimal(percentage) / Decimal(100), places)
