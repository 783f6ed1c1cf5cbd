# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
camrecon API

Public entry points for calculating, finalizing and reporting a CAM
reconciliation. Callers that need serialized access to shared drafts use
``camrecon.reconciliation.ReconciliationWorkspace`` instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Iterable, Optional, Union

from .core.primitives import ReconciliationSettings
from .reconciliation.aggregation import ReconciliationAggregator
from .reconciliation.allocation import AllocationEngine, LeaseTermsInput, OccupancyInput
from .reconciliation.expense import ExpenseInput, ExpenseLedger
from .reconciliation.records import Reconciliation
from .reporting.report import ReconciliationReport


def calculate(
    draft: Reconciliation,
    expenses: Union[ExpenseLedger, Iterable[ExpenseInput]],
    lease_terms_by_tenant: Mapping[Any, LeaseTermsInput],
    building_total_sf: Any,
    occupancy: Optional[Mapping[Any, OccupancyInput]] = None,
    payments: Optional[Mapping[Any, Any]] = None,
    settings: Optional[ReconciliationSettings] = None,
) -> Reconciliation:
    """
    Calculate a draft reconciliation and return the updated draft.

    Workflow:
      1) Filter the expense pool to recoverable items in the period
      2) Gross up variable expenses when a lease requires it
      3) Allocate the pool to each tenant
      4) Roll items up into reconciliation totals (version + 1)

    Args:
        draft: Draft reconciliation, e.g. from ``Reconciliation.for_period``.
        expenses: Expense line items or storage rows.
        lease_terms_by_tenant: Lease terms keyed by tenant id.
        building_total_sf: Rentable building area.
        occupancy: Optional occupancy windows by tenant id.
        payments: Optional estimated payments collected by tenant id.
        settings: Calculation settings; defaults apply when omitted.

    Returns:
        New draft with items and errors replaced. Tenants with unusable
        lease terms are listed in ``errors`` instead of ``items``.
    """
    settings = settings or ReconciliationSettings()
    result = AllocationEngine(settings).calculate(
        draft,
        expenses,
        lease_terms_by_tenant,
        building_total_sf,
        occupancy=occupancy,
        payments=payments,
    )
    return ReconciliationAggregator(settings).apply(draft, result)


def record_payments(
    recon: Reconciliation,
    payments: Mapping[Any, Any],
    settings: Optional[ReconciliationSettings] = None,
) -> Reconciliation:
    """Record tenant payments on a draft and recompute balances."""
    return ReconciliationAggregator(settings).apply_payments(recon, payments)


def finalize(
    recon: Reconciliation,
    as_of: Optional[datetime] = None,
    settings: Optional[ReconciliationSettings] = None,
) -> Reconciliation:
    """Return the finalized, read-only version of a calculated draft."""
    return ReconciliationAggregator(settings).finalize(recon, as_of=as_of)


def build_report(
    recon: Reconciliation,
    expenses: Optional[Union[ExpenseLedger, Iterable[ExpenseInput]]] = None,
    settings: Optional[ReconciliationSettings] = None,
) -> ReconciliationReport:
    """Build the tenant-facing report for a calculated or finalized reconciliation."""
    return ReconciliationReport.from_reconciliation(recon, expenses=expenses, settings=settings)
