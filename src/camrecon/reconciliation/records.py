# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Reconciliation records.

A ``Reconciliation`` is one calculation run for a property and period; its
``ReconciliationItem`` rows hold each tenant's result. Both are immutable:
``calculate`` produces a new draft with the item set fully replaced, and
``finalize`` produces the terminal, read-only version.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple, Union
from uuid import UUID, uuid4

import pandas as pd
from pydantic import Field, model_validator

from ..core.exceptions import InvalidLeaseTermsError
from ..core.primitives import (
    ZERO,
    AllocationMethodEnum,
    DecimalBetween0And1,
    Model,
    Money,
    NonNegativeArea,
    NonNegativeInt,
    NonNegativeMoney,
    PeriodKindEnum,
    PositiveArea,
    ReconciliationPeriod,
    ReconciliationStatusEnum,
)
from .gross_up import CategoryPool


class ReconciliationItem(Model):
    """
    One tenant's allocation within a reconciliation.

    The adjustment columns disclose every step of the calculation in the
    order it was applied. Intermediate figures keep full precision; only
    ``allocated_amount`` is rounded to cents.
    """

    tenant_id: str
    tenant_name: Optional[str] = None
    leased_sf: PositiveArea
    share_percent: DecimalBetween0And1

    pre_cap_amount: NonNegativeMoney
    excluded_amount: NonNegativeMoney = ZERO
    gross_up_amount: Money = ZERO
    admin_fee: NonNegativeMoney = ZERO
    base_year_credit: NonNegativeMoney = ZERO
    expense_stop_credit: NonNegativeMoney = ZERO
    cam_cap_ceiling: Optional[NonNegativeMoney] = None
    cam_cap_applied: NonNegativeMoney = ZERO

    proration_factor: DecimalBetween0And1 = Decimal("1")
    occupied_days: NonNegativeInt
    period_days: int = Field(gt=0)

    allocated_amount: NonNegativeMoney
    amount_paid: NonNegativeMoney = ZERO
    balance_due: Money

    @model_validator(mode="after")
    def check_balance(self) -> "ReconciliationItem":
        if self.balance_due != self.allocated_amount - self.amount_paid:
            raise ValueError("balance_due must equal allocated_amount - amount_paid")
        return self

    @property
    def allocable_amount(self) -> Decimal:
        """Pre-cap share plus admin fee, before any credit."""
        return self.pre_cap_amount + self.admin_fee

    def with_payment(self, amount_paid: Decimal) -> "ReconciliationItem":
        return self.model_copy(
            update={
                "amount_paid": amount_paid,
                "balance_due": self.allocated_amount - amount_paid,
            }
        )


class TenantError(Model):
    """A tenant skipped during calculation, reported next to the successful items."""

    tenant_id: str
    tenant_name: Optional[str] = None
    code: str
    message: str
    reasons: Tuple[str, ...] = ()

    @classmethod
    def from_exception(cls, error: InvalidLeaseTermsError) -> "TenantError":
        return cls(
            tenant_id=error.tenant_id,
            tenant_name=error.tenant_name,
            code=error.code,
            message=error.message,
            reasons=error.reasons,
        )

    def describe(self) -> str:
        """Statement line, e.g. ``Tenant Acme skipped: cam_cap_percent ... is required``."""
        name = self.tenant_name or self.tenant_id
        detail = "; ".join(self.reasons) if self.reasons else self.message
        return f"Tenant {name} skipped: {detail}"


class Reconciliation(Model):
    """
    One CAM reconciliation run for a property and period.

    Created as a draft. While draft, calculations may be applied any number
    of times, each one fully replacing ``items`` and ``errors`` and bumping
    ``version``. Finalizing is the only irreversible transition.

    Examples:
        >>> draft = Reconciliation.for_period("prop-1", "2024")
        >>> draft.status
        <ReconciliationStatusEnum.DRAFT: 'draft'>
    """

    uid: UUID = Field(default_factory=uuid4)
    property_id: str
    period_start: date
    period_end: date
    period_kind: PeriodKindEnum = PeriodKindEnum.ANNUAL
    allocation_method: AllocationMethodEnum = AllocationMethodEnum.PRO_RATA_SF

    building_total_sf: Optional[PositiveArea] = None
    occupied_sf: NonNegativeArea = ZERO
    occupancy_rate: Optional[Decimal] = None
    gross_up_threshold: Optional[Decimal] = None

    total_cam_expenses: NonNegativeMoney = ZERO
    grossed_up_total: NonNegativeMoney = ZERO
    total_gross_up: NonNegativeMoney = ZERO
    total_allocated: NonNegativeMoney = ZERO
    total_collected: NonNegativeMoney = ZERO
    total_balance_due: Money = ZERO
    variance: Money = ZERO

    expense_pools: Tuple[CategoryPool, ...] = ()
    items: Tuple[ReconciliationItem, ...] = ()
    errors: Tuple[TenantError, ...] = ()

    version: int = Field(default=0, ge=0)
    is_finalized: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finalized_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_period(self) -> "Reconciliation":
        if self.period_end < self.period_start:
            raise ValueError(
                f"period_end ({self.period_end}) must not be before period_start ({self.period_start})"
            )
        if self.is_finalized and self.finalized_at is None:
            raise ValueError("finalized_at is required on a finalized reconciliation")
        return self

    @classmethod
    def for_period(
        cls,
        property_id: str,
        period: Union[str, pd.Period],
        allocation_method: AllocationMethodEnum = AllocationMethodEnum.PRO_RATA_SF,
    ) -> "Reconciliation":
        """Create a draft from a period string such as ``"2024"``, ``"2024Q1"`` or ``"2024-03"``."""
        resolved = ReconciliationPeriod.from_period(period)
        return cls(
            property_id=property_id,
            period_start=resolved.start,
            period_end=resolved.end,
            period_kind=resolved.kind,
            allocation_method=allocation_method,
        )

    @property
    def period(self) -> ReconciliationPeriod:
        return ReconciliationPeriod(start=self.period_start, end=self.period_end, kind=self.period_kind)

    @property
    def status(self) -> ReconciliationStatusEnum:
        return ReconciliationStatusEnum.FINALIZED if self.is_finalized else ReconciliationStatusEnum.DRAFT

    @property
    def is_draft(self) -> bool:
        return not self.is_finalized

    def item_for(self, tenant_id: str) -> Optional[ReconciliationItem]:
        for item in self.items:
            if item.tenant_id == tenant_id:
                return item
        return None
