"""
Numeric helpers shared by the reconciliation pipeline.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Union

Number = Union[int, float]


def to_number(value: Any) -> Number:
    """
    Coerce a raw document value into a finite number.

    Missing, non-numeric, NaN and infinite values become 0. Integers are
    kept as integers; everything else becomes a float. BSON ``Decimal128``
    values are unwrapped through ``to_decimal()``.

    Args:
        value: Raw value as read from a document

    Returns:
        Finite int or float
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if hasattr(value, "to_decimal"):
        value = value.to_decimal()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return number


def non_negative(value: Any) -> Number:
    """Coerce with :func:`to_number` and clamp below at zero."""
    number = to_number(value)
    return number if number > 0 else 0


def round_half_up(value: Number, ndigits: int = 0) -> Number:
    """
    Round half away from zero on the decimal representation of ``value``.

    Unlike the built-in ``round``, ``round_half_up(2.5) == 3`` and
    ``round_half_up(2.675, 2) == 2.68``.

    Args:
        value: Number to round
        ndigits: Decimal places to keep (0 returns an int)

    Returns:
        int when ndigits == 0, otherwise float
    """
    quantum = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    if ndigits <= 0:
        return int(rounded)
    return float(rounded)


def round2(value: Number) -> float:
    return round_half_up(value, 2)
