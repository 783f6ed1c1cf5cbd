# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Typed exception hierarchy for CAM reconciliation.

Every error carries a stable machine-readable ``code`` and the structured
data a caller needs to render it, so callers catch by type instead of
parsing messages.

    CamReconciliationError
     +-- InvalidInputError         structural input problem, aborts the run
     +-- InvalidLeaseTermsError    one tenant's terms are inconsistent
     +-- NotDraftError             mutation of a finalized reconciliation
     +-- EmptyAllocationError      finalize with no allocation items
     +-- StaleReconciliationError  optimistic version check failed
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple
from uuid import UUID


class CamReconciliationError(Exception):
    """Base class for all reconciliation errors."""

    code: str = "CAM_RECONCILIATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(CamReconciliationError):
    """
    Malformed or missing structural input.

    Examples: non-positive building area, an empty expense set, zero
    occupied area when gross-up is required. Aborts the whole calculation.
    """

    code = "INVALID_INPUT"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidLeaseTermsError(CamReconciliationError):
    """
    A single tenant's lease terms are internally inconsistent.

    Scoped to that tenant: the engine records it and keeps allocating the
    remaining tenants.
    """

    code = "INVALID_LEASE_TERMS"

    def __init__(
        self,
        tenant_id: str,
        reasons: Sequence[str],
        tenant_name: Optional[str] = None,
    ):
        self.tenant_id = tenant_id
        self.tenant_name = tenant_name
        self.reasons: Tuple[str, ...] = tuple(reasons)
        super().__init__(f"Invalid lease terms for tenant {tenant_id}: {'; '.join(self.reasons)}")


class NotDraftError(CamReconciliationError):
    """Attempted to calculate, pay or finalize a reconciliation that is already finalized."""

    code = "NOT_DRAFT"

    def __init__(self, reconciliation_uid: UUID, operation: str):
        self.reconciliation_uid = reconciliation_uid
        self.operation = operation
        super().__init__(
            f"Cannot {operation} reconciliation {reconciliation_uid}: it is finalized"
        )


class EmptyAllocationError(CamReconciliationError):
    """Finalize was requested for a reconciliation with no allocation items."""

    code = "EMPTY_ALLOCATION"

    def __init__(self, reconciliation_uid: UUID):
        self.reconciliation_uid = reconciliation_uid
        super().__init__(
            f"Cannot finalize reconciliation {reconciliation_uid}: it has no allocation items"
        )


class StaleReconciliationError(CamReconciliationError):
    """The caller's version of a draft no longer matches the stored one."""

    code = "STALE_RECONCILIATION"

    def __init__(self, reconciliation_uid: UUID, expected_version: int, actual_version: int):
        self.reconciliation_uid = reconciliation_uid
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Reconciliation {reconciliation_uid} is at version {actual_version}, "
            f"expected {expected_version}"
        )
