"""Whole-number rounding helpers shared by the calculators."""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, Decimal]


def round_half_up(value: Number) -> int:
    """Round to the nearest whole number, halves away from zero (2.5 -> 3)."""
    return int(Decimal(str(value)).to_integral_value(rounding=ROUND_HALF_UP))


def ceil_int(value: Number) -> int:
    return int(Decimal(str(value)).to_integral_value(rounding=ROUND_CEILING))
