# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Decimal arithmetic helpers.

All monetary arithmetic in camrecon runs on ``decimal.Decimal`` inside a
local context with a fixed precision, so the same inputs always produce the
same digits. Values are rounded to cents only at the final allocation step
and when rendering reports.
"""

from __future__ import annotations

import decimal
from decimal import Decimal
from typing import Iterable, Union

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert a value to Decimal without passing through binary floats.

    Floats are converted through their shortest ``repr`` so that ``0.1``
    becomes ``Decimal("0.1")`` rather than its binary expansion.

    Raises:
        TypeError: If the value is a bool or an unsupported type.
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not monetary values")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except decimal.InvalidOperation as e:
            raise ValueError(f"Not a decimal number: {value!r}") from e
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def calculation_context(precision: int = 34) -> decimal.Context:
    """Decimal context used for every allocation run."""
    return decimal.Context(
        prec=precision,
        rounding=decimal.ROUND_HALF_EVEN,
        traps=[decimal.InvalidOperation, decimal.DivisionByZero, decimal.Overflow],
    )


def quantize(value: Decimal, quantum: Decimal = CENT, rounding: str = decimal.ROUND_HALF_UP) -> Decimal:
    """Round ``value`` to the given quantum (cents by default)."""
    return value.quantize(quantum, rounding=rounding)


def round_to_cents(value: Decimal, rounding: str = decimal.ROUND_HALF_UP) -> Decimal:
    return quantize(value, CENT, rounding)


def sum_decimals(values: Iterable[Decimal]) -> Decimal:
    """Sum Decimals starting from an exact zero (``sum()`` starts from int 0)."""
    total = ZERO
    for value in values:
        total += value
    return total


def format_currency(amount: Decimal) -> str:
    """Format a Decimal as a dollar figure, e.g. ``$1,234.50``."""
    rounded = round_to_cents(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"
