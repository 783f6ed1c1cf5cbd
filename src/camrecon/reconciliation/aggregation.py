# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Reconciliation Aggregator

Rolls allocation results up into reconciliation totals, checks that the
allocations are consistent with the expense pool, and owns the finalize
transition.

Variance between the pool and the allocated total is reported as-is.
Exclusions, credits, caps and proration legitimately leave part of the pool
unallocated; nothing here ever adjusts an allocation to close the gap.
"""

from __future__ import annotations

import decimal
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..core.exceptions import EmptyAllocationError, InvalidInputError, NotDraftError
from ..core.primitives import (
    CENT,
    HUNDRED,
    ONE,
    ZERO,
    AllocationMethodEnum,
    ExpenseCategoryEnum,
    Model,
    NonNegativeMoney,
    ReconciliationSettings,
    calculation_context,
    quantize,
    sum_decimals,
    to_decimal,
)
from .allocation import AllocationResult
from .gross_up import CategoryPool, GrossUpResult
from .records import Reconciliation, ReconciliationItem

logger = logging.getLogger(__name__)

SHARE_EPSILON = Decimal("1e-9")


class CategoryBreakdown(Model):
    """One row of the expense breakdown shown on a reconciliation statement."""

    category: ExpenseCategoryEnum
    label: str
    total: NonNegativeMoney
    raw_total: NonNegativeMoney
    gross_up: NonNegativeMoney
    item_count: int
    percent_of_total: Decimal


class ReconciliationAggregator:
    """
    Builds reconciliation totals and manages the draft/finalized lifecycle.

    Usage:
        aggregator = ReconciliationAggregator()
        draft = aggregator.apply(draft, engine.calculate(draft, ...))
        for issue in aggregator.validate(draft):
            print(issue)
        final = aggregator.finalize(draft)
    """

    def __init__(self, settings: Optional[ReconciliationSettings] = None):
        self.settings = settings or ReconciliationSettings()

    def category_breakdown(
        self, pools: Union[GrossUpResult, Iterable[CategoryPool]]
    ) -> Tuple[CategoryBreakdown, ...]:
        """
        Per-category totals of the (gross-up-adjusted) pool, largest first.

        Ties are ordered by category name so the breakdown is stable.
        """
        if isinstance(pools, GrossUpResult):
            pools = pools.pools
        pools = list(pools)
        grand_total = sum_decimals(pool.adjusted_total for pool in pools)
        with decimal.localcontext(calculation_context(self.settings.decimal_precision)):
            rows = [
                CategoryBreakdown(
                    category=pool.category,
                    label=pool.category.label,
                    total=pool.adjusted_total,
                    raw_total=pool.raw_total,
                    gross_up=pool.gross_up,
                    item_count=pool.item_count,
                    percent_of_total=(pool.adjusted_total / grand_total * HUNDRED) if grand_total > 0 else ZERO,
                )
                for pool in pools
            ]
        rows.sort(key=lambda row: (-row.total, row.category.value))
        return tuple(rows)

    def apply(self, draft: Reconciliation, result: AllocationResult) -> Reconciliation:
        """
        Return a new draft whose items, errors and totals come from ``result``.

        The previous item set is replaced entirely, never merged.

        Raises:
            NotDraftError: If the reconciliation is finalized.
            InvalidInputError: If the result was computed for another reconciliation.
        """
        if draft.is_finalized:
            raise NotDraftError(draft.uid, "calculate")
        if result.reconciliation_uid != draft.uid:
            raise InvalidInputError(
                f"Allocation result belongs to reconciliation {result.reconciliation_uid}, not {draft.uid}",
                field="result",
            )

        gross_up = result.gross_up
        update: Dict[str, Any] = {
            "building_total_sf": result.building_total_sf,
            "occupied_sf": result.occupied_sf,
            "occupancy_rate": gross_up.occupancy_rate,
            "gross_up_threshold": gross_up.threshold,
            "total_cam_expenses": result.raw_expense_total,
            "grossed_up_total": gross_up.grossed_up_total,
            "total_gross_up": gross_up.total_gross_up,
            "expense_pools": gross_up.pools,
            "items": result.items,
            "errors": result.errors,
            "version": draft.version + 1,
        }
        update.update(self._totals(gross_up.grossed_up_total, result.items))
        updated = draft.model_copy(update=update)
        logger.info(
            f"Reconciliation {draft.uid} v{updated.version}: allocated {updated.total_allocated} "
            f"of {updated.grossed_up_total} across {len(result.items)} tenants "
            f"({len(result.errors)} skipped), variance {updated.variance}"
        )
        for issue in self.validate(updated):
            logger.warning(f"Reconciliation {draft.uid}: {issue}")
        return updated

    def apply_payments(self, recon: Reconciliation, payments: Mapping[Any, Any]) -> Reconciliation:
        """
        Record estimated payments received and recompute balances.

        Tenants not mentioned keep their current ``amount_paid``.

        Raises:
            NotDraftError: If the reconciliation is finalized.
            InvalidInputError: If a payment is negative, not a number, or
                names a tenant without an allocation item.
        """
        if recon.is_finalized:
            raise NotDraftError(recon.uid, "record payments on")

        resolved: Dict[str, Decimal] = {}
        known = {item.tenant_id for item in recon.items}
        for key, value in payments.items():
            tenant_id = str(key)
            if tenant_id not in known:
                raise InvalidInputError(f"No allocation item for tenant {tenant_id}", field="payments")
            try:
                amount = to_decimal(value)
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"Payment for tenant {tenant_id} is not a number: {value!r}", field="payments") from e
            if amount < 0:
                raise InvalidInputError(f"Payment for tenant {tenant_id} must not be negative, got {amount}", field="payments")
            resolved[tenant_id] = amount

        items = tuple(
            item.with_payment(resolved[item.tenant_id]) if item.tenant_id in resolved else item
            for item in recon.items
        )
        update: Dict[str, Any] = {"items": items, "version": recon.version + 1}
        update.update(self._totals(recon.grossed_up_total, items))
        return recon.model_copy(update=update)

    def validate(self, recon: Reconciliation) -> List[str]:
        """
        Consistency checks between allocations and the expense pool.

        Returns a list of human-readable issues; an empty list means the
        reconciliation is internally consistent. Nothing is corrected.
        """
        issues: List[str] = []
        items = recon.items
        tolerance = self.settings.rounding_tolerance

        with decimal.localcontext(calculation_context(self.settings.decimal_precision)):
            share_sum = sum_decimals(item.share_percent for item in items)
            if share_sum > ONE + SHARE_EPSILON:
                issues.append(f"Tenant shares sum to {share_sum}, more than 100% of the pool")

            for item in items:
                expected = self.recompute_allocation(item)
                if abs(expected - item.allocated_amount) > tolerance:
                    issues.append(
                        f"Tenant {item.tenant_id}: allocated {item.allocated_amount} does not match "
                        f"its disclosed adjustments ({expected})"
                    )

            admin_fees = sum_decimals(item.admin_fee for item in items)
            ceiling = recon.grossed_up_total + admin_fees + tolerance * len(items)
            allocated = sum_decimals(item.allocated_amount for item in items)
            if allocated > ceiling:
                issues.append(
                    f"Allocated total {allocated} exceeds the expense pool plus admin fees ({ceiling})"
                )
            if allocated != recon.total_allocated:
                issues.append(f"total_allocated {recon.total_allocated} does not equal the item sum {allocated}")

            if (
                recon.allocation_method == AllocationMethodEnum.PRO_RATA_SF
                and recon.building_total_sf is not None
                and recon.occupied_sf > recon.building_total_sf
            ):
                issues.append(
                    f"Occupied area {recon.occupied_sf} exceeds building area {recon.building_total_sf}"
                )
        return issues

    def recompute_allocation(self, item: ReconciliationItem) -> Decimal:
        """Rebuild an item's allocated amount from its disclosed adjustment columns."""
        after_credits = max(ZERO, item.allocable_amount - item.base_year_credit - item.expense_stop_credit)
        after_cap = after_credits - item.cam_cap_applied
        return quantize(after_cap * item.proration_factor, CENT, self.settings.rounding_mode.value)

    def finalize(self, recon: Reconciliation, as_of: Optional[datetime] = None) -> Reconciliation:
        """
        Lock a draft reconciliation.

        The returned reconciliation is terminal: further calculate, payment
        or finalize calls raise ``NotDraftError``. On failure the input is
        returned to the caller untouched.

        Raises:
            NotDraftError: If the reconciliation is already finalized.
            EmptyAllocationError: If it has no allocation items.
        """
        if recon.is_finalized:
            raise NotDraftError(recon.uid, "finalize")
        if not recon.items:
            raise EmptyAllocationError(recon.uid)

        for issue in self.validate(recon):
            logger.warning(f"Finalizing reconciliation {recon.uid} with issue: {issue}")
        if recon.errors:
            logger.warning(
                f"Finalizing reconciliation {recon.uid} with {len(recon.errors)} skipped tenants"
            )

        finalized = recon.model_copy(
            update={"is_finalized": True, "finalized_at": as_of or datetime.now(timezone.utc)}
        )
        logger.info(f"Reconciliation {recon.uid} finalized at version {recon.version}")
        return finalized

    @staticmethod
    def _totals(pool_total: Decimal, items: Tuple[ReconciliationItem, ...]) -> Dict[str, Decimal]:
        total_allocated = sum_decimals(item.allocated_amount for item in items)
        total_collected = sum_decimals(item.amount_paid for item in items)
        return {
            "total_allocated": total_allocated,
            "total_collected": total_collected,
            "total_balance_due": total_allocated - total_collected,
            "variance": pool_total - total_allocated,
        }
