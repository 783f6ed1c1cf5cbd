# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
CAM Allocation Engine

Apportions a property's expense pool across tenants according to each
tenant's lease provisions. For every tenant the adjustments run in a fixed
order, each step starting from the previous step's result:

    1. expense pool, minus the tenant's excluded categories
    2. share of the remaining pool (pro-rata SF or equal share)
    3. admin fee on the share
    4. base-year credit            } at most one of these two applies,
    5. expense-stop credit         } chosen by the lease's credit precedence
    6. CAM cap
    7. occupancy proration
    8. rounding to cents, balance against payments

The engine is a pure function of its inputs: it never reads shared state,
and repeated runs over the same inputs produce identical items.
"""

from __future__ import annotations

import decimal
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from pydantic import ValidationError

from ..core.exceptions import InvalidInputError, InvalidLeaseTermsError, NotDraftError
from ..core.primitives import (
    CENT,
    HUNDRED,
    ONE,
    ZERO,
    AllocationMethodEnum,
    CamCapTypeEnum,
    CreditPrecedenceEnum,
    ExpenseCategoryEnum,
    Model,
    NonNegativeArea,
    NonNegativeMoney,
    PositiveArea,
    ReconciliationPeriod,
    ReconciliationSettings,
    calculation_context,
    quantize,
    sum_decimals,
    to_decimal,
)
from .expense import ExpenseInput, ExpenseLedger
from .gross_up import GrossUpCalculator, GrossUpResult
from .lease_terms import LeaseTerms, OccupancyRecord
from .records import Reconciliation, ReconciliationItem, TenantError

logger = logging.getLogger(__name__)

LeaseTermsInput = Union[LeaseTerms, Mapping]
OccupancyInput = Union[OccupancyRecord, Mapping]


@dataclass(frozen=True)
class TenantOccupancy:
    """A tenant on the occupancy roster for one run."""

    terms: LeaseTerms
    leased_sf: Decimal
    occupied_days: int
    window: Optional[Tuple[date, date]]

    @property
    def tenant_id(self) -> str:
        return self.terms.tenant_id

    @property
    def is_occupying(self) -> bool:
        return self.occupied_days > 0


@dataclass
class AllocationContext:
    """
    State shared by every tenant's allocation within one run.

    Built once per ``calculate`` call and read-only afterwards.
    """

    period: ReconciliationPeriod
    allocation_method: AllocationMethodEnum
    building_total_sf: Decimal
    gross_up: GrossUpResult
    settings: ReconciliationSettings
    roster: Dict[str, TenantOccupancy] = field(default_factory=dict)
    payments: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def pool_by_category(self) -> Dict[ExpenseCategoryEnum, Decimal]:
        return self.gross_up.adjusted_by_category()

    @property
    def pool_total(self) -> Decimal:
        return self.gross_up.grossed_up_total

    @property
    def occupied_sf(self) -> Decimal:
        return sum_decimals(t.leased_sf for t in self.roster.values() if t.is_occupying)

    @property
    def occupied_tenant_count(self) -> int:
        return sum(1 for t in self.roster.values() if t.is_occupying)


class AllocationResult(Model):
    """
    Outcome of one ``calculate`` call.

    Successful tenants appear in ``items``; tenants whose lease terms could
    not be used appear in ``errors``. Both are ordered by tenant id.
    """

    reconciliation_uid: UUID
    items: Tuple[ReconciliationItem, ...]
    errors: Tuple[TenantError, ...] = ()
    gross_up: GrossUpResult
    building_total_sf: PositiveArea
    occupied_sf: NonNegativeArea
    occupied_tenant_count: int
    in_scope_expense_count: int
    raw_expense_total: NonNegativeMoney

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def total_allocated(self) -> Decimal:
        return sum_decimals(item.allocated_amount for item in self.items)


class AllocationEngine:
    """
    Computes per-tenant CAM allocations for a draft reconciliation.

    Usage:
        engine = AllocationEngine()
        result = engine.calculate(
            draft,
            expenses=expense_items,
            lease_terms_by_tenant={"t-1": terms_1, "t-2": terms_2},
            building_total_sf=100_000,
        )
        for item in result.items:
            print(item.tenant_id, item.allocated_amount)
        for error in result.errors:
            print(error.describe())
    """

    def __init__(self, settings: Optional[ReconciliationSettings] = None):
        self.settings = settings or ReconciliationSettings()
        self.gross_up_calculator = GrossUpCalculator(self.settings)

    def calculate(
        self,
        draft: Reconciliation,
        expenses: Union[ExpenseLedger, Iterable[ExpenseInput]],
        lease_terms_by_tenant: Mapping[Any, LeaseTermsInput],
        building_total_sf: Union[Decimal, int, str],
        occupancy: Optional[Mapping[Any, OccupancyInput]] = None,
        payments: Optional[Mapping[Any, Union[Decimal, int, str]]] = None,
    ) -> AllocationResult:
        """
        Allocate the period's expense pool across tenants.

        Args:
            draft: The reconciliation being calculated; must not be finalized.
            expenses: Expense items (or storage rows) for the property.
            lease_terms_by_tenant: Immutable snapshot of lease terms keyed by tenant id.
            building_total_sf: Rentable area of the building.
            occupancy: Optional occupancy windows (and area overrides) by tenant id.
            payments: Optional estimated payments already collected, by tenant id.

        Returns:
            AllocationResult with items for every tenant that could be
            allocated and errors for those that could not.

        Raises:
            NotDraftError: If the reconciliation is finalized.
            InvalidInputError: On structural input problems.
            InvalidLeaseTermsError: Only when ``settings.fail_on_tenant_error`` is set.
        """
        if draft.is_finalized:
            raise NotDraftError(draft.uid, "calculate")

        building_sf = self._resolve_building_sf(building_total_sf)
        period = draft.period
        ledger = self._resolve_expenses(expenses).in_scope(
            period, filter_by_period=self.settings.filter_expenses_by_period
        )
        if not ledger.items:
            raise InvalidInputError(
                f"No CAM-recoverable expenses between {period.start} and {period.end}", field="expenses"
            )
        if not lease_terms_by_tenant:
            raise InvalidInputError("No tenant lease terms supplied", field="lease_terms_by_tenant")

        occupancy_by_tenant = self._resolve_occupancy(occupancy or {})
        payments_by_tenant = self._resolve_payments(payments or {})

        errors: List[TenantError] = []
        terms_by_tenant: Dict[str, LeaseTerms] = {}
        for key in sorted(lease_terms_by_tenant, key=str):
            try:
                terms_by_tenant[str(key)] = self._resolve_terms(key, lease_terms_by_tenant[key])
            except InvalidLeaseTermsError as e:
                self._record_tenant_error(e, errors)

        for tenant_id in sorted(set(occupancy_by_tenant) - {str(k) for k in lease_terms_by_tenant}):
            logger.warning(f"Occupancy supplied for tenant {tenant_id} without lease terms; ignored")

        # Rejected tenants never count toward occupied area or the equal-share divisor
        roster: Dict[str, TenantOccupancy] = {}
        for tenant_id, terms in terms_by_tenant.items():
            tenant = self._build_occupancy(terms, occupancy_by_tenant.get(tenant_id), period)
            try:
                self.check_tenant(tenant, building_sf)
            except InvalidLeaseTermsError as e:
                self._record_tenant_error(e, errors)
                continue
            roster[tenant_id] = tenant
        occupied_sf = sum_decimals(t.leased_sf for t in roster.values() if t.is_occupying)

        gross_up = self.gross_up_calculator.calculate(
            ledger, building_sf, occupied_sf, [t.terms for t in roster.values()]
        )
        context = AllocationContext(
            period=period,
            allocation_method=draft.allocation_method,
            building_total_sf=building_sf,
            gross_up=gross_up,
            settings=self.settings,
            roster=roster,
            payments=payments_by_tenant,
        )
        logger.debug(
            f"Allocating reconciliation {draft.uid}: pool {context.pool_total}, "
            f"{len(roster)} tenants ({context.occupied_tenant_count} occupying), method {draft.allocation_method.value}"
        )

        items: List[ReconciliationItem] = []
        with decimal.localcontext(calculation_context(self.settings.decimal_precision)):
            for tenant_id in sorted(roster):
                try:
                    items.append(self.allocate_tenant(context, roster[tenant_id]))
                except InvalidLeaseTermsError as e:
                    self._record_tenant_error(e, errors)

        errors.sort(key=lambda error: error.tenant_id)
        return AllocationResult(
            reconciliation_uid=draft.uid,
            items=tuple(items),
            errors=tuple(errors),
            gross_up=gross_up,
            building_total_sf=building_sf,
            occupied_sf=occupied_sf,
            occupied_tenant_count=context.occupied_tenant_count,
            in_scope_expense_count=len(ledger.items),
            raw_expense_total=ledger.raw_total,
        )

    def allocate_tenant(self, context: AllocationContext, tenant: TenantOccupancy) -> ReconciliationItem:
        """
        Run the eight allocation steps for one tenant.

        Must be called inside the run's decimal context.

        Raises:
            InvalidLeaseTermsError: If the tenant's terms cannot be applied.
        """
        self.check_tenant(tenant, context.building_total_sf)
        terms = tenant.terms
        tenant_id = terms.tenant_id

        # 1. Expense pool, excluded categories removed before allocation
        pool = context.pool_by_category
        excluded_amount = sum_decimals(
            pool[category] for category in sorted(terms.excluded_categories, key=lambda c: c.value) if category in pool
        )
        allocable_pool = context.pool_total - excluded_amount

        # 2. Share
        share = self._share(context, tenant)
        pre_cap_amount = allocable_pool * share
        gross_up_amount = share * sum_decimals(
            amount for category, amount in context.gross_up.gross_up_by_category().items()
            if category not in terms.excluded_categories
        )
        logger.debug(
            f"[{tenant_id}] pool {context.pool_total} - excluded {excluded_amount} = {allocable_pool}; "
            f"share {share} -> pre-cap {pre_cap_amount}"
        )

        # 3. Admin fee on the post-exclusion share
        admin_fee = ZERO
        if terms.admin_fee_percent:
            admin_fee = pre_cap_amount * terms.admin_fee_percent / HUNDRED
        allocable = pre_cap_amount + admin_fee

        # 4-5. Base-year or expense-stop credit, never both
        base_year_credit = ZERO
        expense_stop_credit = ZERO
        credit = self._credit_to_apply(terms)
        if credit == CreditPrecedenceEnum.BASE_YEAR and terms.base_year_amount is not None:
            base_year_credit = min(allocable, terms.base_year_amount)
        elif credit == CreditPrecedenceEnum.EXPENSE_STOP:
            expense_stop_credit = min(allocable, terms.expense_stop_absolute())
        after_credits = max(ZERO, allocable - base_year_credit - expense_stop_credit)
        logger.debug(
            f"[{tenant_id}] admin fee {admin_fee}; base-year credit {base_year_credit}; "
            f"expense-stop credit {expense_stop_credit} -> {after_credits}"
        )

        # 6. CAM cap
        cam_cap_ceiling = self._cap_ceiling(terms, context.period)
        cam_cap_applied = ZERO
        if cam_cap_ceiling is not None:
            cam_cap_applied = max(ZERO, after_credits - cam_cap_ceiling)
        after_cap = after_credits - cam_cap_applied

        # 7. Proration
        proration_factor = ONE
        if tenant.occupied_days != context.period.days:
            proration_factor = Decimal(tenant.occupied_days) / Decimal(context.period.days)
        prorated = after_cap * proration_factor

        # 8. Round once, at the end
        allocated_amount = quantize(prorated, CENT, context.settings.rounding_mode.value)
        amount_paid = context.payments.get(tenant_id, ZERO)
        logger.debug(
            f"[{tenant_id}] cap ceiling {cam_cap_ceiling}, applied {cam_cap_applied}; "
            f"proration {proration_factor} -> allocated {allocated_amount}"
        )

        return ReconciliationItem(
            tenant_id=tenant_id,
            tenant_name=terms.tenant_name,
            leased_sf=tenant.leased_sf,
            share_percent=share,
            pre_cap_amount=pre_cap_amount,
            excluded_amount=excluded_amount,
            gross_up_amount=gross_up_amount,
            admin_fee=admin_fee,
            base_year_credit=base_year_credit,
            expense_stop_credit=expense_stop_credit,
            cam_cap_ceiling=cam_cap_ceiling,
            cam_cap_applied=cam_cap_applied,
            proration_factor=proration_factor,
            occupied_days=tenant.occupied_days,
            period_days=context.period.days,
            allocated_amount=allocated_amount,
            amount_paid=amount_paid,
            balance_due=allocated_amount - amount_paid,
        )

    @classmethod
    def check_tenant(cls, tenant: TenantOccupancy, building_total_sf: Decimal) -> None:
        """
        Reject a tenant whose terms cannot be applied in this run.

        Raises:
            InvalidLeaseTermsError: On inconsistent terms, a cap with no base
                amount, or an area larger than the building.
        """
        terms = tenant.terms
        problems = terms.consistency_problems()
        if terms.has_cap and cls._cap_base(terms) is None:
            problems.append(f"{terms.cam_cap_type.value} CAM cap needs cam_cap_base_amount or base_year_amount")
        if tenant.leased_sf > building_total_sf:
            problems.append(f"leased_sf ({tenant.leased_sf}) exceeds building_total_sf ({building_total_sf})")
        if problems:
            raise InvalidLeaseTermsError(terms.tenant_id, problems, terms.tenant_name)

    def _share(self, context: AllocationContext, tenant: TenantOccupancy) -> Decimal:
        if context.allocation_method == AllocationMethodEnum.EQUAL_SHARE:
            count = context.occupied_tenant_count
            if not tenant.is_occupying or count == 0:
                return ZERO
            return ONE / Decimal(count)
        return tenant.leased_sf / context.building_total_sf

    @staticmethod
    def _credit_to_apply(terms: LeaseTerms) -> Optional[CreditPrecedenceEnum]:
        """Pick the single credit this lease receives, if any."""
        if terms.has_base_year and terms.has_expense_stop:
            return terms.credit_precedence
        if terms.has_base_year:
            return CreditPrecedenceEnum.BASE_YEAR
        if terms.has_expense_stop:
            return CreditPrecedenceEnum.EXPENSE_STOP
        return None

    @staticmethod
    def _cap_base(terms: LeaseTerms) -> Optional[Decimal]:
        if terms.cam_cap_base_amount is not None:
            return terms.cam_cap_base_amount
        return terms.base_year_amount

    @staticmethod
    def _cap_ceiling(terms: LeaseTerms, period: ReconciliationPeriod) -> Optional[Decimal]:
        """
        Capped cost basis for this period, or None when the lease has no cap.

        cumulative: base * (1 + rate * years)
        compounded: base * (1 + rate) ** years
        """
        if not terms.has_cap:
            return None

        base_amount = AllocationEngine._cap_base(terms)
        if base_amount is None:
            raise InvalidLeaseTermsError(
                terms.tenant_id,
                [f"{terms.cam_cap_type.value} CAM cap needs cam_cap_base_amount or base_year_amount"],
                terms.tenant_name,
            )

        rate = (terms.cam_cap_percent or ZERO) / HUNDRED
        anchor_year = terms.cam_cap_base_year or terms.base_year
        years = 0 if anchor_year is None else max(0, period.year - anchor_year)
        if anchor_year is not None and anchor_year > period.year:
            logger.debug(
                f"[{terms.tenant_id}] cap base year {anchor_year} is after {period.year}; no escalation"
            )

        if terms.cam_cap_type == CamCapTypeEnum.CUMULATIVE:
            return base_amount * (ONE + rate * years)
        return base_amount * (ONE + rate) ** years

    def _build_occupancy(
        self,
        terms: LeaseTerms,
        record: Optional[OccupancyRecord],
        period: ReconciliationPeriod,
    ) -> TenantOccupancy:
        # Occupied window: period ∩ lease proration window ∩ occupancy snapshot
        starts = [d for d in (terms.proration_start, record.occupied_from if record else None) if d]
        ends = [d for d in (terms.proration_end, record.occupied_to if record else None) if d]
        window = period.clip(max(starts) if starts else None, min(ends) if ends else None)
        occupied_days = 0 if window is None else (window[1] - window[0]).days + 1
        leased_sf = record.leased_sf if record is not None and record.leased_sf is not None else terms.leased_sf
        return TenantOccupancy(terms=terms, leased_sf=leased_sf, occupied_days=occupied_days, window=window)

    def _resolve_terms(self, key: Any, raw: LeaseTermsInput) -> LeaseTerms:
        tenant_id = str(key)
        if isinstance(raw, LeaseTerms):
            terms = raw
        elif isinstance(raw, Mapping):
            data = dict(raw)
            data.setdefault("tenant_id", tenant_id)
            try:
                terms = LeaseTerms.model_validate(data)
            except ValidationError as e:
                reasons = [
                    f"{'.'.join(str(p) for p in err['loc']) or 'lease_terms'}: {err['msg']}" for err in e.errors()
                ]
                name = data.get("tenant_name")
                raise InvalidLeaseTermsError(tenant_id, reasons, name if isinstance(name, str) else None) from e
        else:
            raise InvalidLeaseTermsError(tenant_id, [f"unsupported lease terms type {type(raw).__name__}"])

        if terms.tenant_id != tenant_id:
            raise InvalidLeaseTermsError(
                tenant_id,
                [f"lease terms belong to tenant {terms.tenant_id}, keyed as {tenant_id}"],
                terms.tenant_name,
            )
        return terms

    def _record_tenant_error(self, error: InvalidLeaseTermsError, errors: List[TenantError]) -> None:
        if self.settings.fail_on_tenant_error:
            raise error
        logger.warning(f"Tenant {error.tenant_name or error.tenant_id} skipped: {'; '.join(error.reasons)}")
        errors.append(TenantError.from_exception(error))

    @staticmethod
    def _resolve_building_sf(value: Any) -> Decimal:
        try:
            building_sf = to_decimal(value)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"building_total_sf is not a number: {value!r}", field="building_total_sf") from e
        if building_sf <= 0:
            raise InvalidInputError(
                f"building_total_sf must be positive, got {building_sf}", field="building_total_sf"
            )
        return building_sf

    @staticmethod
    def _resolve_expenses(expenses: Union[ExpenseLedger, Iterable[ExpenseInput]]) -> ExpenseLedger:
        if isinstance(expenses, ExpenseLedger):
            return expenses
        try:
            return ExpenseLedger.from_records(expenses)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid expense item: {e}", field="expenses") from e

    @staticmethod
    def _resolve_occupancy(occupancy: Mapping[Any, OccupancyInput]) -> Dict[str, OccupancyRecord]:
        resolved: Dict[str, OccupancyRecord] = {}
        for key, record in occupancy.items():
            if isinstance(record, OccupancyRecord):
                resolved[str(key)] = record
                continue
            try:
                resolved[str(key)] = OccupancyRecord.model_validate(record)
            except ValidationError as e:
                raise InvalidInputError(f"Invalid occupancy for tenant {key}: {e}", field="occupancy") from e
        return resolved

    @staticmethod
    def _resolve_payments(payments: Mapping[Any, Any]) -> Dict[str, Decimal]:
        resolved: Dict[str, Decimal] = {}
        for key, value in payments.items():
            try:
                amount = to_decimal(value)
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"Payment for tenant {key} is not a number: {value!r}", field="payments") from e
            if amount < 0:
                raise InvalidInputError(f"Payment for tenant {key} must not be negative, got {amount}", field="payments")
            resolved[str(key)] = amount
        return resolved
