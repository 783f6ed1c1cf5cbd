# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, FrozenSet, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.primitives import (
    CamCapTypeEnum,
    CreditPrecedenceEnum,
    ExpenseCategoryEnum,
    NonNegativeMoney,
    NonNegativePercent,
    Percent,
    PositiveArea,
    RecordModel,
    Year,
    check_conditional_requirement,
    check_date_ordering,
    raise_if_problems,
)


class LeaseTerms(RecordModel):
    """
    One tenant's CAM provisions, as a snapshot taken at calculation time.

    Attributes:
        tenant_id: Tenant the terms belong to.
        tenant_name: Display name used on statements and error messages.
        leased_sf: Leased area in square feet.
        cam_cap_type: Cap growth style (none, cumulative, compounded).
        cam_cap_percent: Annual cap escalation in percent (5 means 5%).
        cam_cap_base_amount: Dollar amount the cap escalates from.
        cam_cap_base_year: Year the cap escalates from; falls back to base_year.
        base_year: Reference year for base-year leases.
        base_year_amount: Tenant's CAM cost in the base year.
        expense_stop_amount: Stop amount, per SF or absolute per year.
        expense_stop_per_sf: Whether the stop is expressed per square foot.
        credit_precedence: Credit that wins when both base year and stop are set.
        has_gross_up: Whether the lease requires grossing up variable expenses.
        gross_up_occupancy_threshold: Target occupancy percentage (0-100).
        admin_fee_percent: Landlord administrative markup in percent.
        excluded_categories: Expense categories this tenant does not pay.
        proration_start: First day of occupancy within the period.
        proration_end: Last day of occupancy within the period.
        notes: Free-form special provisions.
    """

    tenant_id: str
    tenant_name: Optional[str] = None
    leased_sf: PositiveArea

    cam_cap_type: CamCapTypeEnum = CamCapTypeEnum.NONE
    cam_cap_percent: Optional[NonNegativePercent] = None
    cam_cap_base_amount: Optional[NonNegativeMoney] = None
    cam_cap_base_year: Optional[Year] = None

    base_year: Optional[Year] = None
    base_year_amount: Optional[NonNegativeMoney] = None

    expense_stop_amount: Optional[NonNegativeMoney] = None
    expense_stop_per_sf: bool = False
    credit_precedence: CreditPrecedenceEnum = CreditPrecedenceEnum.BASE_YEAR

    has_gross_up: bool = False
    gross_up_occupancy_threshold: Optional[Percent] = None

    admin_fee_percent: Optional[NonNegativePercent] = None
    excluded_categories: FrozenSet[ExpenseCategoryEnum] = Field(default_factory=frozenset)

    proration_start: Optional[date] = None
    proration_end: Optional[date] = None
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_storage_nulls(cls, data: Any) -> Any:
        # Storage rows carry NULL for "not set" on flags and arrays
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        if data.get("cam_cap_type") is None:
            data.pop("cam_cap_type", None)
        for flag in ("expense_stop_per_sf", "has_gross_up"):
            if data.get(flag) is None:
                data.pop(flag, None)
        if data.get("excluded_categories") is None:
            data["excluded_categories"] = frozenset()
        return data

    @field_validator("tenant_id", mode="before")
    @classmethod
    def stringify_tenant_id(cls, v: Any) -> Any:
        # UUID primary keys from storage
        if v is not None and not isinstance(v, str):
            return str(v)
        return v

    @model_validator(mode="after")
    def check_consistency(self) -> "LeaseTerms":
        raise_if_problems(self.consistency_problems())
        return self

    def consistency_problems(self) -> List[str]:
        problems: List[str] = []
        problems += check_conditional_requirement(
            self.cam_cap_type != CamCapTypeEnum.NONE,
            [self.cam_cap_percent, self.cam_cap_base_amount],
            f"cam_cap_percent or cam_cap_base_amount is required when cam_cap_type is {self.cam_cap_type.value}",
        )
        problems += check_conditional_requirement(
            self.base_year_amount is not None,
            [self.base_year],
            "base_year is required when base_year_amount is set",
        )
        problems += check_date_ordering(
            self.proration_start, self.proration_end, "proration_start", "proration_end"
        )
        return problems

    @property
    def display_name(self) -> str:
        return self.tenant_name or self.tenant_id

    @property
    def has_cap(self) -> bool:
        return self.cam_cap_type != CamCapTypeEnum.NONE

    @property
    def has_base_year(self) -> bool:
        """A base year takes the lease's credit slot even before its amount is known."""
        return self.base_year is not None

    @property
    def has_base_year_credit(self) -> bool:
        return self.base_year is not None and self.base_year_amount is not None

    @property
    def has_expense_stop(self) -> bool:
        return self.expense_stop_amount is not None

    def expense_stop_absolute(self) -> Optional[Decimal]:
        """The annual stop in dollars, converting per-SF stops with the leased area."""
        if self.expense_stop_amount is None:
            return None
        if self.expense_stop_per_sf:
            return self.expense_stop_amount * self.leased_sf
        return self.expense_stop_amount


class OccupancyRecord(RecordModel):
    """
    When a tenant physically occupied its space.

    ``leased_sf`` overrides the lease terms' area when supplied (for
    example after an expansion recorded in the rent roll). Open-ended
    windows extend to the period bounds.
    """

    leased_sf: Optional[PositiveArea] = None
    occupied_from: Optional[date] = None
    occupied_to: Optional[date] = None

    @model_validator(mode="after")
    def check_window(self) -> "OccupancyRecord":
        raise_if_problems(
            check_date_ordering(self.occupied_from, self.occupied_to, "occupied_from", "occupied_to")
        )
        return self
