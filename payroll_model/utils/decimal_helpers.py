# payroll_model/utils/decimal_helpers.py

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

# Shared zero constant for financial calculations
ZERO_DECIMAL = Decimal('0.00')
# Standard quantization unit for money
TWO_PLACES = Decimal('0.01')
HUNDRED = Decimal('100')

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert ints, floats and numeric strings to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal value: {value!r}") from e


def to_money(d: Number) -> Decimal:
    """Quantize to two places with ROUND_HALF_UP rounding."""
    return to_decimal(d).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Decimal]) -> Decimal:
    """Exact sum of already rounded amounts."""
    return sum(values, ZERO_DECIMAL)


def pct_change(delta: Decimal, base: Decimal) -> Decimal:
    """delta / base * 100 rounded to money precision; 0 when base is exactly 0."""
    if base == 0:
        return ZERO_DECIMAL
    return to_money(delta / base * HUNDRED)
