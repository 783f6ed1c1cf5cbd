# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum
from typing import FrozenSet


class ExpenseCategoryEnum(str, Enum):
    """
    Closed set of CAM expense categories.

    Every expense line item belongs to exactly one category. Anything that
    does not fit a named category is booked as OTHER rather than under an
    ad-hoc string key.
    """

    PROPERTY_TAX = "property_tax"
    INSURANCE = "insurance"
    UTILITIES_WATER = "utilities_water"
    UTILITIES_ELECTRIC = "utilities_electric"
    UTILITIES_GAS = "utilities_gas"
    UTILITIES_TRASH = "utilities_trash"
    MAINTENANCE_REPAIR = "maintenance_repair"
    LANDSCAPING = "landscaping"
    JANITORIAL = "janitorial"
    SECURITY = "security"
    MANAGEMENT_FEE = "management_fee"
    LEGAL = "legal"
    ACCOUNTING = "accounting"
    MARKETING = "marketing"
    CAPITAL_IMPROVEMENT = "capital_improvement"
    PEST_CONTROL = "pest_control"
    HVAC = "hvac"
    ROOF_REPAIR = "roof_repair"
    PARKING_LOT = "parking_lot"
    SIGNAGE = "signage"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Display label used on reconciliation statements."""
        return _CATEGORY_LABELS[self]

    @property
    def is_variable_by_default(self) -> bool:
        """Whether costs in this category usually scale with occupancy."""
        return self in VARIABLE_CATEGORIES


_CATEGORY_LABELS = {
    ExpenseCategoryEnum.PROPERTY_TAX: "Property Tax",
    ExpenseCategoryEnum.INSURANCE: "Insurance",
    ExpenseCategoryEnum.UTILITIES_WATER: "Water",
    ExpenseCategoryEnum.UTILITIES_ELECTRIC: "Electric",
    ExpenseCategoryEnum.UTILITIES_GAS: "Gas",
    ExpenseCategoryEnum.UTILITIES_TRASH: "Trash",
    ExpenseCategoryEnum.MAINTENANCE_REPAIR: "Maintenance & Repair",
    ExpenseCategoryEnum.LANDSCAPING: "Landscaping",
    ExpenseCategoryEnum.JANITORIAL: "Janitorial",
    ExpenseCategoryEnum.SECURITY: "Security",
    ExpenseCategoryEnum.MANAGEMENT_FEE: "Management Fee",
    ExpenseCategoryEnum.LEGAL: "Legal",
    ExpenseCategoryEnum.ACCOUNTING: "Accounting",
    ExpenseCategoryEnum.MARKETING: "Marketing",
    ExpenseCategoryEnum.CAPITAL_IMPROVEMENT: "Capital Improvement",
    ExpenseCategoryEnum.PEST_CONTROL: "Pest Control",
    ExpenseCategoryEnum.HVAC: "HVAC",
    ExpenseCategoryEnum.ROOF_REPAIR: "Roof Repair",
    ExpenseCategoryEnum.PARKING_LOT: "Parking Lot",
    ExpenseCategoryEnum.SIGNAGE: "Signage",
    ExpenseCategoryEnum.OTHER: "Other",
}

# Occupancy-sensitive categories. Taxes, insurance and the professional
# fees are fixed regardless of how much of the building is leased.
VARIABLE_CATEGORIES: FrozenSet[ExpenseCategoryEnum] = frozenset(
    {
        ExpenseCategoryEnum.UTILITIES_WATER,
        ExpenseCategoryEnum.UTILITIES_ELECTRIC,
        ExpenseCategoryEnum.UTILITIES_GAS,
        ExpenseCategoryEnum.UTILITIES_TRASH,
        ExpenseCategoryEnum.MAINTENANCE_REPAIR,
        ExpenseCategoryEnum.LANDSCAPING,
        ExpenseCategoryEnum.JANITORIAL,
        ExpenseCategoryEnum.SECURITY,
        ExpenseCategoryEnum.PEST_CONTROL,
        ExpenseCategoryEnum.HVAC,
        ExpenseCategoryEnum.PARKING_LOT,
        ExpenseCategoryEnum.SIGNAGE,
        ExpenseCategoryEnum.OTHER,
    }
)


class CamCapTypeEnum(str, Enum):
    """
    How a CAM cap ceiling grows from its base amount.

    Attributes:
        NONE: No cap.
        CUMULATIVE: Simple growth, ``base * (1 + rate * years)``.
        COMPOUNDED: Compound growth, ``base * (1 + rate) ** years``.
    """

    NONE = "none"
    CUMULATIVE = "cumulative"
    COMPOUNDED = "compounded"


class AllocationMethodEnum(str, Enum):
    """How the expense pool is split between tenants."""

    PRO_RATA_SF = "pro_rata_sf"  # leased SF / building SF
    EQUAL_SHARE = "equal_share"  # 1 / occupied tenant count


class PeriodKindEnum(str, Enum):
    """Length of a reconciliation period."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class CreditPrecedenceEnum(str, Enum):
    """
    Which credit wins when a lease carries both a base year and an expense stop.

    Only one of the two credits is ever applied to a tenant. The chosen
    precedence is recorded on the lease terms so the outcome is auditable.
    """

    BASE_YEAR = "base_year"
    EXPENSE_STOP = "expense_stop"


class ReconciliationStatusEnum(str, Enum):
    """Lifecycle state of a reconciliation."""

    DRAFT = "draft"
    FINALIZED = "finalized"


class RoundingModeEnum(str, Enum):
    """Rounding modes accepted for the final cent rounding step."""

    HALF_UP = "ROUND_HALF_UP"
    HALF_EVEN = "ROUND_HALF_EVEN"
    DOWN = "ROUND_DOWN"
