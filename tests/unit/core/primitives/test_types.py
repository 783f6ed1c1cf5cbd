# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import TypeAdapter, ValidationError

from camrecon.core.primitives import DecimalBetween0And1, Money, NonNegativeInt, Percent, PositiveArea, Year


def test_percent_bounds():
    adapter = TypeAdapter(Percent)
    assert adapter.validate_python("95") == Decimal("95")
    assert adapter.validate_python(0) == Decimal("0")
    with pytest.raises(ValidationError):
        adapter.validate_python(100.5)


def test_positive_area_rejects_zero():
    with pytest.raises(ValidationError):
        TypeAdapter(PositiveArea).validate_python(0)


def test_money_rejects_non_finite():
    adapter = TypeAdapter(Money)
    assert adapter.validate_python("-12.34") == Decimal("-12.34")
    with pytest.raises(ValidationError):
        adapter.validate_python("NaN")
    with pytest.raises(ValidationError):
        adapter.validate_python("Infinity")


def test_fraction_and_year_bounds():
    with pytest.raises(ValidationError):
        TypeAdapter(DecimalBetween0And1).validate_python("1.01")
    with pytest.raises(ValidationError):
        TypeAdapter(Year).validate_python(1850)


def test_non_negative_int_allows_zero():
    adapter = TypeAdapter(NonNegativeInt)
    assert adapter.validate_python(0) == 0
    with pytest.raises(ValidationError):
        adapter.validate_python(-1)
    with pytest.raises(ValidationError):
        adapter.validate_python("3")
