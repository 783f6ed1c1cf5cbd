# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple, Union
from uuid import UUID, uuid4

import pandas as pd
from pydantic import Field, model_validator

from ..core.primitives import (
    ExpenseCategoryEnum,
    Model,
    NonNegativeMoney,
    RecordModel,
    ReconciliationPeriod,
    sum_decimals,
)

logger = logging.getLogger(__name__)


class ExpenseItem(RecordModel):
    """
    One categorized operating cost for a property.

    ``is_variable`` marks costs that scale with occupancy and are therefore
    eligible for gross-up. When a record does not say, the category's usual
    behavior is used (utilities and upkeep are variable; taxes, insurance
    and professional fees are fixed).
    """

    uid: UUID = Field(default_factory=uuid4)
    category: ExpenseCategoryEnum = ExpenseCategoryEnum.OTHER
    amount: NonNegativeMoney
    is_variable: bool
    is_cam_recoverable: bool = True
    expense_date: Optional[date] = None
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def fill_category_defaults(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        if not data.get("category"):
            data["category"] = ExpenseCategoryEnum.OTHER
        if data.get("is_variable") is None:
            try:
                category = ExpenseCategoryEnum(data["category"])
            except ValueError:
                # Left for field validation to report
                return data
            data["is_variable"] = category.is_variable_by_default
        return data


ExpenseInput = Union[ExpenseItem, Mapping]


class ExpenseLedger(Model):
    """
    The set of expense line items for one property.

    A thin, immutable wrapper offering the totals the gross-up calculator
    and the aggregator need.
    """

    items: Tuple[ExpenseItem, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[ExpenseInput]) -> "ExpenseLedger":
        """Build a ledger from ExpenseItem instances or raw storage rows."""
        items = tuple(
            record if isinstance(record, ExpenseItem) else ExpenseItem.model_validate(record)
            for record in records
        )
        return cls(items=items)

    def in_scope(self, period: ReconciliationPeriod, filter_by_period: bool = True) -> "ExpenseLedger":
        """
        Items that belong in the CAM pool for ``period``.

        Non-recoverable items are always dropped. Dated items outside the
        period are dropped when ``filter_by_period`` is set; undated items
        are assumed to belong to the period.
        """
        kept = []
        for item in self.items:
            if not item.is_cam_recoverable:
                logger.debug(f"Skipping non-recoverable expense {item.uid} ({item.category.value})")
                continue
            if filter_by_period and item.expense_date is not None and not period.contains(item.expense_date):
                logger.debug(
                    f"Skipping expense {item.uid} dated {item.expense_date}, outside {period.start} to {period.end}"
                )
                continue
            kept.append(item)
        return ExpenseLedger(items=tuple(kept))

    @property
    def raw_total(self) -> Decimal:
        return sum_decimals(item.amount for item in self.items)

    @property
    def variable_total(self) -> Decimal:
        return sum_decimals(item.amount for item in self.items if item.is_variable)

    @property
    def fixed_total(self) -> Decimal:
        return sum_decimals(item.amount for item in self.items if not item.is_variable)

    def totals_by_category(self) -> Dict[ExpenseCategoryEnum, Decimal]:
        totals: Dict[ExpenseCategoryEnum, Decimal] = {}
        for item in self.items:
            totals[item.category] = totals.get(item.category, Decimal("0")) + item.amount
        return totals

    def count_by_category(self) -> Dict[ExpenseCategoryEnum, int]:
        counts: Dict[ExpenseCategoryEnum, int] = {}
        for item in self.items:
            counts[item.category] = counts.get(item.category, 0) + 1
        return counts

    def to_dataframe(self) -> pd.DataFrame:
        """Line items as a DataFrame, ordered by date then category."""
        columns = ["uid", "expense_date", "category", "label", "description", "amount", "is_variable"]
        rows = [
            {
                "uid": str(item.uid),
                "expense_date": item.expense_date,
                "category": item.category.value,
                "label": item.category.label,
                "description": item.description,
                "amount": item.amount,
                "is_variable": item.is_variable,
            }
            for item in self.items
        ]
        df = pd.DataFrame(rows, columns=columns)
        if df.empty:
            return df
        return df.sort_values(["expense_date", "category"], na_position="last", kind="stable").reset_index(drop=True)
