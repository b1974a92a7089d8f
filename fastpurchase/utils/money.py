"""
Money helpers.

Amounts are stored as integer cents and handled as two-place ``Decimal``
values everywhere else; floats never reach arithmetic.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a JSON number (or numeric string) to a two-place ``Decimal``.

    Floats go through ``repr`` so ``19.99`` stays ``19.99``.

    Raises:
        ValueError: For bools, non-numbers, NaN, infinities and amounts
            too large to carry two places
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a number: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Out of range: {value!r}") from None


def to_cents(value: Any) -> int:
    return int(to_decimal(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)
