# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for camrecon testing.

Factory helpers build expense items and lease terms with sensible defaults
so each test only spells out the provisions it is exercising.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from camrecon.core.primitives import ExpenseCategoryEnum, ReconciliationSettings
from camrecon.reconciliation import (
    AllocationEngine,
    ExpenseItem,
    LeaseTerms,
    Reconciliation,
    ReconciliationAggregator,
)


# Record Utilities
def make_expense(
    amount: Any,
    category: ExpenseCategoryEnum = ExpenseCategoryEnum.PROPERTY_TAX,
    is_variable: Optional[bool] = None,
    **kwargs: Any,
) -> ExpenseItem:
    """
    Create an expense item for testing.

    ``is_variable`` falls back to the category default when omitted
    (property tax is fixed, janitorial is variable).
    """
    data: Dict[str, Any] = {"amount": Decimal(str(amount)), "category": category, **kwargs}
    if is_variable is not None:
        data["is_variable"] = is_variable
    return ExpenseItem.model_validate(data)


def make_terms(tenant_id: str, leased_sf: Any, **kwargs: Any) -> LeaseTerms:
    """Create lease terms with no special provisions unless given."""
    return LeaseTerms(tenant_id=tenant_id, leased_sf=Decimal(str(leased_sf)), **kwargs)


def terms_map(*terms: LeaseTerms) -> Dict[str, LeaseTerms]:
    return {t.tenant_id: t for t in terms}


@pytest.fixture
def settings() -> ReconciliationSettings:
    return ReconciliationSettings()


@pytest.fixture
def engine(settings: ReconciliationSettings) -> AllocationEngine:
    return AllocationEngine(settings)


@pytest.fixture
def aggregator(settings: ReconciliationSettings) -> ReconciliationAggregator:
    return ReconciliationAggregator(settings)


@pytest.fixture
def draft() -> Reconciliation:
    """Annual 2024 draft for a single property."""
    return Reconciliation.for_period("prop-1", "2024")


@pytest.fixture
def two_tenant_expenses() -> List[ExpenseItem]:
    """$200,000 fixed pool split across two categories."""
    return [
        make_expense(150_000, ExpenseCategoryEnum.PROPERTY_TAX),
        make_expense(50_000, ExpenseCategoryEnum.INSURANCE),
    ]


@pytest.fixture
def two_tenant_terms() -> Dict[str, LeaseTerms]:
    """Tenant A (40,000 SF, plain) and B (60,000 SF, $50,000 expense stop)."""
    return terms_map(
        make_terms("A", 40_000, tenant_name="Acme Dental"),
        make_terms("B", 60_000, tenant_name="Bay Outfitters", expense_stop_amount=Decimal("50000")),
    )
