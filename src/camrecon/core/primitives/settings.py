# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from decimal import Decimal

from pydantic import Field

from .enums import RoundingModeEnum
from .model import Model
from .types import NonNegativeMoney, Percent


class ReconciliationSettings(Model):
    """
    Configuration for the allocation engine and aggregator.

    Settings are passed explicitly to each component; nothing is read from
    the environment. Defaults match common commercial lease practice.

    Usage Examples:
        # Default settings
        settings = ReconciliationSettings()

        # Stop at the first bad lease record instead of collecting errors
        settings = ReconciliationSettings(fail_on_tenant_error=True)

        # Banker's rounding for the final cent step
        settings = ReconciliationSettings(rounding_mode=RoundingModeEnum.HALF_EVEN)
    """

    decimal_precision: int = Field(
        default=34,
        ge=16,
        le=100,
        description="Significant digits carried through intermediate calculations.",
    )
    rounding_mode: RoundingModeEnum = Field(
        default=RoundingModeEnum.HALF_UP,
        description="Rounding mode applied when the final allocation is rounded to cents.",
    )
    default_gross_up_threshold: Percent = Field(
        default=Decimal("95"),
        description="Occupancy percentage used when a lease requires gross-up but states no threshold.",
    )
    fail_on_tenant_error: bool = Field(
        default=False,
        description="If True, raise the first per-tenant lease terms error; otherwise collect it and continue.",
    )
    filter_expenses_by_period: bool = Field(
        default=True,
        description="Drop dated expense items that fall outside the reconciliation period.",
    )
    rounding_tolerance: NonNegativeMoney = Field(
        default=Decimal("0.01"),
        description="Per-tenant tolerance used by consistency checks on rounded allocations.",
    )
