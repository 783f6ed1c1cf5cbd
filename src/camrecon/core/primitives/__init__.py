# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
camrecon Core Primitives

Building blocks shared by every reconciliation component: the immutable
base model, closed enums, constrained Decimal types, decimal arithmetic
helpers, periods and settings.
"""

from .enums import (
    VARIABLE_CATEGORIES,
    AllocationMethodEnum,
    CamCapTypeEnum,
    CreditPrecedenceEnum,
    ExpenseCategoryEnum,
    PeriodKindEnum,
    ReconciliationStatusEnum,
    RoundingModeEnum,
)
from .model import Model, RecordModel
from .money import (
    CENT,
    HUNDRED,
    ONE,
    ZERO,
    calculation_context,
    format_currency,
    quantize,
    round_to_cents,
    sum_decimals,
    to_decimal,
)
from .period import ReconciliationPeriod
from .settings import ReconciliationSettings
from .types import (
    DecimalBetween0And1,
    Money,
    NonNegativeArea,
    NonNegativeInt,
    NonNegativeMoney,
    NonNegativePercent,
    Percent,
    PositiveArea,
    Year,
)
from .validation import (
    check_conditional_requirement,
    check_date_ordering,
    raise_if_problems,
)

__all__ = [
    # Core models
    "Model",
    "RecordModel",
    "ReconciliationPeriod",
    # Settings
    "ReconciliationSettings",
    # Enums
    "AllocationMethodEnum",
    "CamCapTypeEnum",
    "CreditPrecedenceEnum",
    "ExpenseCategoryEnum",
    "PeriodKindEnum",
    "ReconciliationStatusEnum",
    "RoundingModeEnum",
    "VARIABLE_CATEGORIES",
    # Money
    "CENT",
    "HUNDRED",
    "ONE",
    "ZERO",
    "calculation_context",
    "format_currency",
    "quantize",
    "round_to_cents",
    "sum_decimals",
    "to_decimal",
    # Types
    "DecimalBetween0And1",
    "Money",
    "NonNegativeArea",
    "NonNegativeInt",
    "NonNegativeMoney",
    "NonNegativePercent",
    "Percent",
    "PositiveArea",
    "Year",
    # Validation
    "check_conditional_requirement",
    "check_date_ordering",
    "raise_if_problems",
]
