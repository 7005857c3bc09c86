"""
Fixed-point money helpers.

All amounts are Decimals quantized to cents with half-up rounding.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Convert a number to a two-place Decimal."""
    if isinstance(value, float):
        # Go through str so 0.1 stays 0.1 instead of its binary expansion
        value = repr(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(value: Number) -> str:
    """Render an amount the way API payloads expose it, e.g. "1500.00"."""
    return f"{to_money(value):.2f}"
