# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import date
from typing import Optional, Tuple, Union

import pandas as pd
from pydantic import model_validator

from ..exceptions import InvalidInputError
from .enums import PeriodKindEnum
from .model import Model

_KIND_BY_FREQ_PREFIX = {
    "M": PeriodKindEnum.MONTHLY,
    "Q": PeriodKindEnum.QUARTERLY,
    "A": PeriodKindEnum.ANNUAL,
    "Y": PeriodKindEnum.ANNUAL,
}


class ReconciliationPeriod(Model):
    """
    A closed date range ``[start, end]`` covered by one reconciliation.

    Day counts are inclusive of both ends: a calendar year has 365 or 366
    days, January has 31.

    Examples:
        >>> period = ReconciliationPeriod.from_period("2024Q1")
        >>> period.kind, period.start, period.end, period.days
        (<PeriodKindEnum.QUARTERLY: 'quarterly'>, datetime.date(2024, 1, 1), datetime.date(2024, 3, 31), 91)
    """

    start: date
    end: date
    kind: PeriodKindEnum = PeriodKindEnum.ANNUAL

    @model_validator(mode="after")
    def check_ordering(self) -> "ReconciliationPeriod":
        if self.end < self.start:
            raise ValueError(f"period_end ({self.end}) must not be before period_start ({self.start})")
        return self

    @classmethod
    def from_period(cls, value: Union[str, pd.Period]) -> "ReconciliationPeriod":
        """
        Build a period from a pandas period or period string.

        Accepts monthly (``"2024-03"``), quarterly (``"2024Q1"``) and annual
        (``"2024"``) periods.

        Raises:
            InvalidInputError: If the value is not a period, or its frequency
                is not monthly, quarterly or annual.
        """
        if isinstance(value, pd.Period):
            period = value
        else:
            try:
                period = pd.Period(value)
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"Not a reconciliation period: {value!r}", field="period") from e
        kind = _KIND_BY_FREQ_PREFIX.get(period.freqstr[:1])
        if kind is None:
            raise InvalidInputError(
                f"Unsupported reconciliation period frequency: {period.freqstr}", field="period"
            )
        return cls(
            start=period.start_time.date(),
            end=period.end_time.date(),
            kind=kind,
        )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def year(self) -> int:
        """Calendar year the period starts in; used for cap escalation."""
        return self.start.year

    def clip(
        self, window_start: Optional[date] = None, window_end: Optional[date] = None
    ) -> Optional[Tuple[date, date]]:
        """
        Intersect an occupancy window with this period.

        Open ends default to the period bounds. Returns None when the
        window does not overlap the period at all.
        """
        start = max(self.start, window_start) if window_start else self.start
        end = min(self.end, window_end) if window_end else self.end
        if end < start:
            return None
        return start, end

    def overlap_days(self, window_start: Optional[date] = None, window_end: Optional[date] = None) -> int:
        clipped = self.clip(window_start, window_end)
        if clipped is None:
            return 0
        return (clipped[1] - clipped[0]).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end
