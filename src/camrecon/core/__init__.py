# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
camrecon Core Framework

Foundational primitives and the error taxonomy used by the reconciliation
engine, aggregator and reports.
"""

from . import exceptions, primitives
from .exceptions import (
    CamReconciliationError,
    EmptyAllocationError,
    InvalidInputError,
    InvalidLeaseTermsError,
    NotDraftError,
    StaleReconciliationError,
)

__all__ = [
    "exceptions",
    "primitives",
    "CamReconciliationError",
    "EmptyAllocationError",
    "InvalidInputError",
    "InvalidLeaseTermsError",
    "NotDraftError",
    "StaleReconciliationError",
]
