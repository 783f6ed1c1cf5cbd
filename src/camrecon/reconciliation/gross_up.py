# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import decimal
import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from ..core.exceptions import InvalidInputError
from ..core.primitives import (
    HUNDRED,
    ONE,
    ZERO,
    ExpenseCategoryEnum,
    Model,
    NonNegativeInt,
    NonNegativeMoney,
    ReconciliationSettings,
    calculation_context,
    to_decimal,
)
from .expense import ExpenseLedger
from .lease_terms import LeaseTerms

logger = logging.getLogger(__name__)


class CategoryPool(Model):
    """Raw and gross-up-adjusted totals for one expense category."""

    category: ExpenseCategoryEnum
    raw_total: NonNegativeMoney
    adjusted_total: NonNegativeMoney
    item_count: NonNegativeInt

    @property
    def gross_up(self) -> Decimal:
        return self.adjusted_total - self.raw_total


class GrossUpResult(Model):
    """
    The expense pool after gross-up.

    When gross-up does not apply, ``factor`` is 1, ``total_gross_up`` is 0
    and every adjusted total equals its raw total.
    """

    applied: bool
    threshold: Optional[Decimal] = None
    occupancy_rate: Decimal
    factor: Decimal = ONE
    raw_total: NonNegativeMoney
    variable_raw_total: NonNegativeMoney
    grossed_up_total: NonNegativeMoney
    total_gross_up: NonNegativeMoney
    pools: Tuple[CategoryPool, ...] = ()

    def adjusted_by_category(self) -> Dict[ExpenseCategoryEnum, Decimal]:
        return {pool.category: pool.adjusted_total for pool in self.pools}

    def raw_by_category(self) -> Dict[ExpenseCategoryEnum, Decimal]:
        return {pool.category: pool.raw_total for pool in self.pools}

    def gross_up_by_category(self) -> Dict[ExpenseCategoryEnum, Decimal]:
        return {pool.category: pool.gross_up for pool in self.pools}


class GrossUpCalculator:
    """
    Adjusts occupancy-sensitive expenses to a target occupancy.

    Gross-up runs when any lease requires it. The target is the lowest
    threshold among those leases, and it only applies while actual
    occupancy is below that target. Each variable item is scaled by
    ``target / actual``; fixed items are never grossed up.
    """

    def __init__(self, settings: Optional[ReconciliationSettings] = None):
        self.settings = settings or ReconciliationSettings()

    def resolve_threshold(self, lease_terms: Iterable[LeaseTerms]) -> Optional[Decimal]:
        """Lowest gross-up threshold (percent) among leases that require gross-up."""
        thresholds = [
            terms.gross_up_occupancy_threshold
            if terms.gross_up_occupancy_threshold is not None
            else self.settings.default_gross_up_threshold
            for terms in lease_terms
            if terms.has_gross_up
        ]
        return min(thresholds) if thresholds else None

    def calculate(
        self,
        expenses: ExpenseLedger,
        building_total_sf: Decimal,
        occupied_sf: Decimal,
        lease_terms: Iterable[LeaseTerms],
    ) -> GrossUpResult:
        """
        Compute the gross-up-adjusted expense pool.

        Raises:
            InvalidInputError: If the building area is not positive, the
                occupied area is negative, or gross-up is required with
                zero occupied area.
        """
        building_total_sf = to_decimal(building_total_sf)
        occupied_sf = to_decimal(occupied_sf)
        if building_total_sf <= 0:
            raise InvalidInputError(
                f"building_total_sf must be positive, got {building_total_sf}", field="building_total_sf"
            )
        if occupied_sf < 0:
            raise InvalidInputError(f"occupied_sf must not be negative, got {occupied_sf}", field="occupied_sf")

        with decimal.localcontext(calculation_context(self.settings.decimal_precision)):
            occupancy_rate = occupied_sf / building_total_sf
            threshold = self.resolve_threshold(lease_terms)

            factor = ONE
            if threshold is None:
                logger.debug("No lease requires gross-up; expense pool used as incurred")
            elif occupied_sf == 0:
                raise InvalidInputError(
                    "Gross-up is undefined with zero occupied area", field="occupied_sf"
                )
            else:
                target = threshold / HUNDRED
                if occupancy_rate > ONE:
                    logger.warning(
                        f"Occupied area {occupied_sf} exceeds building area {building_total_sf}; skipping gross-up"
                    )
                elif occupancy_rate >= target:
                    logger.debug(
                        f"Occupancy {occupancy_rate:.4f} meets gross-up target {target:.4f}; no gross-up"
                    )
                else:
                    factor = target / occupancy_rate
                    logger.debug(
                        f"Grossing up variable expenses by {factor:.6f} (target {target:.4f}, actual {occupancy_rate:.4f})"
                    )

            raw: Dict[ExpenseCategoryEnum, Decimal] = {}
            adjusted: Dict[ExpenseCategoryEnum, Decimal] = {}
            counts: Dict[ExpenseCategoryEnum, int] = {}
            variable_raw_total = ZERO
            for item in expenses.items:
                amount = item.amount
                if item.is_variable:
                    variable_raw_total += amount
                    amount = amount * factor
                raw[item.category] = raw.get(item.category, ZERO) + item.amount
                adjusted[item.category] = adjusted.get(item.category, ZERO) + amount
                counts[item.category] = counts.get(item.category, 0) + 1

            pools = tuple(
                CategoryPool(
                    category=category,
                    raw_total=raw[category],
                    adjusted_total=adjusted[category],
                    item_count=counts[category],
                )
                for category in sorted(raw, key=lambda c: c.value)
            )
            raw_total = sum((pool.raw_total for pool in pools), ZERO)
            grossed_up_total = sum((pool.adjusted_total for pool in pools), ZERO)

        return GrossUpResult(
            applied=factor != ONE,
            threshold=threshold,
            occupancy_rate=occupancy_rate,
            factor=factor,
            raw_total=raw_total,
            variable_raw_total=variable_raw_total,
            grossed_up_total=grossed_up_total,
            total_gross_up=grossed_up_total - raw_total,
            pools=pools,
        )
