# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
camrecon Reconciliation Engine

Expense ledgers, lease provisions, gross-up, per-tenant allocation and the
draft/finalized reconciliation lifecycle.
"""

from .aggregation import CategoryBreakdown, ReconciliationAggregator
from .allocation import (
    AllocationContext,
    AllocationEngine,
    AllocationResult,
    TenantOccupancy,
)
from .expense import ExpenseItem, ExpenseLedger
from .gross_up import CategoryPool, GrossUpCalculator, GrossUpResult
from .lease_terms import LeaseTerms, OccupancyRecord
from .records import Reconciliation, ReconciliationItem, TenantError
from .workspace import ReconciliationWorkspace

__all__ = [
    # Inputs
    "ExpenseItem",
    "ExpenseLedger",
    "LeaseTerms",
    "OccupancyRecord",
    # Records
    "Reconciliation",
    "ReconciliationItem",
    "TenantError",
    # Gross-up
    "CategoryPool",
    "GrossUpCalculator",
    "GrossUpResult",
    # Allocation
    "AllocationContext",
    "AllocationEngine",
    "AllocationResult",
    "TenantOccupancy",
    # Aggregation and lifecycle
    "CategoryBreakdown",
    "ReconciliationAggregator",
    "ReconciliationWorkspace",
]
