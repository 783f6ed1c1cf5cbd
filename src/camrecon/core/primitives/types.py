# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from decimal import Decimal
from typing import Annotated

from pydantic import Field

# constrained types
NonNegativeInt = Annotated[int, Field(strict=True, ge=0)]
Money = Annotated[Decimal, Field(allow_inf_nan=False)]
NonNegativeMoney = Annotated[Decimal, Field(ge=0, allow_inf_nan=False)]
PositiveArea = Annotated[Decimal, Field(gt=0, allow_inf_nan=False)]
NonNegativeArea = Annotated[Decimal, Field(ge=0, allow_inf_nan=False)]
Percent = Annotated[Decimal, Field(ge=0, le=100, allow_inf_nan=False)]
NonNegativePercent = Annotated[Decimal, Field(ge=0, allow_inf_nan=False)]
DecimalBetween0And1 = Annotated[Decimal, Field(ge=0, le=1, allow_inf_nan=False)]
Year = Annotated[int, Field(ge=1900, le=2200)]
