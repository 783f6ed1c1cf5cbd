# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Reconciliation statement report.

Translates a calculated (or finalized) reconciliation into the tables a
property manager sends to tenants: the expense breakdown by category and
each tenant's allocation with every adjustment disclosed. Reports only
format and present data; all figures come from the reconciliation itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from ..core.primitives import CENT, ReconciliationSettings, quantize
from ..reconciliation.aggregation import CategoryBreakdown, ReconciliationAggregator
from ..reconciliation.expense import ExpenseInput, ExpenseLedger
from ..reconciliation.gross_up import CategoryPool
from ..reconciliation.records import Reconciliation, ReconciliationItem

SHARE_QUANTUM = Decimal("0.000001")
PRORATION_QUANTUM = Decimal("0.0001")
PERCENT_QUANTUM = Decimal("0.01")

CATEGORY_COLUMNS = ["category", "label", "total", "raw_total", "gross_up", "item_count", "percent_of_total"]

TENANT_COLUMNS = [
    "tenant_id",
    "tenant_name",
    "leased_sf",
    "share_percent",
    "pre_cap_amount",
    "excluded_amount",
    "gross_up_amount",
    "admin_fee",
    "base_year_credit",
    "expense_stop_credit",
    "cam_cap_ceiling",
    "cam_cap_applied",
    "proration_factor",
    "occupied_days",
    "allocated_amount",
    "amount_paid",
    "balance_due",
]

MONEY_COLUMNS = {
    "pre_cap_amount",
    "excluded_amount",
    "gross_up_amount",
    "admin_fee",
    "base_year_credit",
    "expense_stop_credit",
    "cam_cap_ceiling",
    "cam_cap_applied",
    "allocated_amount",
    "amount_paid",
    "balance_due",
}


def _money(value: Optional[Decimal]) -> Optional[Decimal]:
    return None if value is None else quantize(value, CENT)


def _tenant_row(item: ReconciliationItem) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "tenant_id": item.tenant_id,
        "tenant_name": item.tenant_name or item.tenant_id,
        "leased_sf": item.leased_sf,
        "share_percent": quantize(item.share_percent, SHARE_QUANTUM),
        "proration_factor": quantize(item.proration_factor, PRORATION_QUANTUM),
        "occupied_days": item.occupied_days,
    }
    for column in MONEY_COLUMNS:
        row[column] = _money(getattr(item, column))
    return {column: row[column] for column in TENANT_COLUMNS}


def _category_row(row: CategoryBreakdown) -> Dict[str, Any]:
    return {
        "category": row.category.value,
        "label": row.label,
        "total": _money(row.total),
        "raw_total": _money(row.raw_total),
        "gross_up": _money(row.gross_up),
        "item_count": row.item_count,
        "percent_of_total": quantize(row.percent_of_total, PERCENT_QUANTUM),
    }


def _json_safe(value: Any) -> Any:
    # Fixed-point strings, matching model_dump(mode="json")
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, dict):
        return {key: _json_safe(v) for key, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


@dataclass(frozen=True)
class ReconciliationReport:
    """
    Presentation view of one reconciliation.

    Built with ``from_reconciliation``; never performs allocation math.

    Example:
        ```python
        report = ReconciliationReport.from_reconciliation(final)
        print(report.tenant_allocations_df())
        csv_text = report.to_csv()
        ```
    """

    reconciliation: Reconciliation
    category_breakdown: Tuple[CategoryBreakdown, ...]
    issues: Tuple[str, ...] = ()
    expenses: Optional[ExpenseLedger] = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_reconciliation(
        cls,
        recon: Reconciliation,
        breakdown: Optional[Iterable[CategoryBreakdown]] = None,
        expenses: Optional[Union[ExpenseLedger, Iterable[ExpenseInput]]] = None,
        settings: Optional[ReconciliationSettings] = None,
        generated_at: Optional[datetime] = None,
    ) -> "ReconciliationReport":
        """
        Build the report for ``recon``.

        Args:
            recon: Calculated or finalized reconciliation.
            breakdown: Precomputed category breakdown; derived from the
                reconciliation's expense pools when omitted.
            expenses: Optional expense line items for the detail listing.
                Only items in the reconciliation's scope are shown. When the
                reconciliation carries no expense pools, the breakdown is
                built from these items at their incurred amounts.
            settings: Settings used for the consistency checks.
            generated_at: Report timestamp (defaults to now, UTC).
        """
        aggregator = ReconciliationAggregator(settings)
        ledger = None
        if expenses is not None:
            if not isinstance(expenses, ExpenseLedger):
                expenses = ExpenseLedger.from_records(expenses)
            ledger = expenses.in_scope(recon.period, aggregator.settings.filter_expenses_by_period)

        if breakdown is None:
            pools: Iterable[CategoryPool] = recon.expense_pools
            if not pools and ledger is not None:
                counts = ledger.count_by_category()
                pools = [
                    CategoryPool(category=category, raw_total=total, adjusted_total=total, item_count=counts[category])
                    for category, total in ledger.totals_by_category().items()
                ]
            breakdown = aggregator.category_breakdown(pools)

        return cls(
            reconciliation=recon,
            category_breakdown=tuple(breakdown),
            issues=tuple(aggregator.validate(recon)),
            expenses=ledger,
            generated_at=generated_at or datetime.now(timezone.utc),
        )

    @property
    def tenant_allocations(self) -> List[Dict[str, Any]]:
        """One row per allocated tenant, money rounded to cents."""
        return [_tenant_row(item) for item in self.reconciliation.items]

    @property
    def errors(self) -> List[str]:
        """Statement lines for skipped tenants."""
        return [error.describe() for error in self.reconciliation.errors]

    @property
    def totals(self) -> Dict[str, Any]:
        recon = self.reconciliation
        return {
            "total_cam_expenses": _money(recon.total_cam_expenses),
            "total_gross_up": _money(recon.total_gross_up),
            "grossed_up_total": _money(recon.grossed_up_total),
            "total_allocated": _money(recon.total_allocated),
            "total_collected": _money(recon.total_collected),
            "total_balance_due": _money(recon.total_balance_due),
            "variance": _money(recon.variance),
            "building_total_sf": recon.building_total_sf,
            "occupied_sf": recon.occupied_sf,
            "occupancy_rate": None if recon.occupancy_rate is None else quantize(recon.occupancy_rate, SHARE_QUANTUM),
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable report (Decimals as fixed-point strings, dates as ISO strings)."""
        recon = self.reconciliation
        header = {
            "uid": str(recon.uid),
            "property_id": recon.property_id,
            "period_start": recon.period_start.isoformat(),
            "period_end": recon.period_end.isoformat(),
            "period_kind": recon.period_kind.value,
            "allocation_method": recon.allocation_method.value,
            "status": recon.status.value,
            "is_finalized": recon.is_finalized,
            "finalized_at": recon.finalized_at.isoformat() if recon.finalized_at else None,
            "version": recon.version,
            "gross_up_threshold": recon.gross_up_threshold,
        }
        header.update(self.totals)
        return _json_safe(
            {
                "reconciliation": header,
                "expense_breakdown": [_category_row(row) for row in self.category_breakdown],
                "tenant_allocations": self.tenant_allocations,
                "errors": self.errors,
                "issues": list(self.issues),
                "generated_at": self.generated_at.isoformat(),
            }
        )

    def category_breakdown_df(self) -> pd.DataFrame:
        return pd.DataFrame([_category_row(row) for row in self.category_breakdown], columns=CATEGORY_COLUMNS)

    def tenant_allocations_df(self) -> pd.DataFrame:
        df = pd.DataFrame(self.tenant_allocations, columns=TENANT_COLUMNS)
        return df.set_index("tenant_id")

    def expense_detail_df(self) -> pd.DataFrame:
        """In-scope expense line items, empty when the report was built without them."""
        ledger = self.expenses if self.expenses is not None else ExpenseLedger()
        return ledger.to_dataframe()

    def to_csv(self, table: str = "tenant_allocations") -> str:
        """
        Render one table as CSV text.

        Args:
            table: ``"tenant_allocations"``, ``"category_breakdown"`` or ``"expenses"``.
        """
        if table == "tenant_allocations":
            return self.tenant_allocations_df().to_csv()
        if table == "category_breakdown":
            return self.category_breakdown_df().to_csv(index=False)
        if table == "expenses":
            return self.expense_detail_df().to_csv(index=False)
        raise ValueError(f"Unknown report table: {table!r}")
