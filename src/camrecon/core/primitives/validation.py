# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Reusable validation helpers for record models.

Each helper returns a list of human-readable problems instead of raising
on the first one, so a single lease record can report everything that is
wrong with it at once.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, List, Optional


def check_date_ordering(
    start: Optional[date],
    end: Optional[date],
    start_field: str,
    end_field: str,
) -> List[str]:
    """
    Check that an end date does not precede its start date.

    Single-day windows (``start == end``) are valid.
    """
    if start is not None and end is not None and end < start:
        return [f"{end_field} ({end}) must not be before {start_field} ({start})"]
    return []


def check_conditional_requirement(
    condition_met: bool,
    required_values: Iterable[Any],
    message: str,
) -> List[str]:
    """
    Require at least one of ``required_values`` to be set when a condition holds.

    Usage:
        problems += check_conditional_requirement(
            terms.cam_cap_type != CamCapTypeEnum.NONE,
            [terms.cam_cap_percent, terms.cam_cap_base_amount],
            "cam_cap_percent or cam_cap_base_amount is required when a CAM cap is set",
        )
    """
    if condition_met and all(value is None for value in required_values):
        return [message]
    return []


def raise_if_problems(problems: List[str]) -> None:
    """Raise a single ValueError listing every problem found."""
    if problems:
        raise ValueError("; ".join(problems))
