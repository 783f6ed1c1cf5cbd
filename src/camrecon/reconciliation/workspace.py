# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Reconciliation Workspace

Holds the current version of each reconciliation and serializes the
operations that replace it. Calculation itself is pure; the workspace is
the only place where two callers can race, so every read-modify-write of a
reconciliation runs under that reconciliation's own lock.

A calculate racing a finalize on the same reconciliation either completes
first (and the finalize locks the new version) or observes the finalized
state and raises ``NotDraftError``. Different reconciliations never share a
lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
from uuid import UUID

from ..core.exceptions import InvalidInputError, StaleReconciliationError
from ..core.primitives import ReconciliationSettings
from .aggregation import ReconciliationAggregator
from .allocation import AllocationEngine, LeaseTermsInput, OccupancyInput
from .expense import ExpenseInput, ExpenseLedger
from .records import Reconciliation

logger = logging.getLogger(__name__)


class ReconciliationWorkspace:
    """
    In-memory store of reconciliations keyed by ``uid``.

    Usage:
        workspace = ReconciliationWorkspace()
        draft = workspace.create("prop-1", "2024")
        draft = workspace.calculate(draft.uid, expenses, terms, 100_000,
                                    expected_version=draft.version)
        final = workspace.finalize(draft.uid, expected_version=draft.version)
    """

    def __init__(self, settings: Optional[ReconciliationSettings] = None):
        self.settings = settings or ReconciliationSettings()
        self.engine = AllocationEngine(self.settings)
        self.aggregator = ReconciliationAggregator(self.settings)
        self._reconciliations: Dict[UUID, Reconciliation] = {}
        self._locks: Dict[UUID, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def create(self, property_id: str, period: Any, **kwargs: Any) -> Reconciliation:
        """Create and store a new draft for ``period`` (e.g. ``"2024"`` or ``"2024Q1"``)."""
        draft = Reconciliation.for_period(property_id, period, **kwargs)
        return self.add(draft)

    def add(self, reconciliation: Reconciliation) -> Reconciliation:
        """Store an existing reconciliation, e.g. one loaded from persistence."""
        with self._registry_lock:
            if reconciliation.uid in self._reconciliations:
                raise InvalidInputError(
                    f"Reconciliation {reconciliation.uid} is already in the workspace", field="uid"
                )
            self._reconciliations[reconciliation.uid] = reconciliation
            self._locks[reconciliation.uid] = threading.Lock()
        logger.debug(f"Added reconciliation {reconciliation.uid} for property {reconciliation.property_id}")
        return reconciliation

    def get(self, uid: UUID) -> Reconciliation:
        with self._registry_lock:
            try:
                return self._reconciliations[uid]
            except KeyError:
                raise InvalidInputError(f"Unknown reconciliation {uid}", field="uid") from None

    def list_reconciliations(self, property_id: Optional[str] = None) -> List[Reconciliation]:
        with self._registry_lock:
            recons = list(self._reconciliations.values())
        if property_id is not None:
            recons = [r for r in recons if r.property_id == property_id]
        return sorted(recons, key=lambda r: (r.property_id, r.period_start, str(r.uid)))

    def calculate(
        self,
        uid: UUID,
        expenses: Union[ExpenseLedger, Iterable[ExpenseInput]],
        lease_terms_by_tenant: Mapping[Any, LeaseTermsInput],
        building_total_sf: Any,
        occupancy: Optional[Mapping[Any, OccupancyInput]] = None,
        payments: Optional[Mapping[Any, Any]] = None,
        expected_version: Optional[int] = None,
    ) -> Reconciliation:
        """Recalculate a draft and store the new version."""

        def run(draft: Reconciliation) -> Reconciliation:
            result = self.engine.calculate(
                draft,
                expenses,
                lease_terms_by_tenant,
                building_total_sf,
                occupancy=occupancy,
                payments=payments,
            )
            return self.aggregator.apply(draft, result)

        return self._update(uid, expected_version, run)

    def record_payments(
        self,
        uid: UUID,
        payments: Mapping[Any, Any],
        expected_version: Optional[int] = None,
    ) -> Reconciliation:
        """Record tenant payments against the current draft."""
        return self._update(uid, expected_version, lambda draft: self.aggregator.apply_payments(draft, payments))

    def finalize(
        self,
        uid: UUID,
        expected_version: Optional[int] = None,
        as_of: Optional[datetime] = None,
    ) -> Reconciliation:
        """Lock the reconciliation. The stored draft is unchanged if this raises."""
        return self._update(uid, expected_version, lambda draft: self.aggregator.finalize(draft, as_of=as_of))

    def _update(
        self,
        uid: UUID,
        expected_version: Optional[int],
        operation: Callable[[Reconciliation], Reconciliation],
    ) -> Reconciliation:
        with self._registry_lock:
            lock = self._locks.get(uid)
        if lock is None:
            raise InvalidInputError(f"Unknown reconciliation {uid}", field="uid")

        with lock:
            current = self._reconciliations[uid]
            if expected_version is not None and expected_version != current.version:
                raise StaleReconciliationError(uid, expected_version, current.version)
            updated = operation(current)
            with self._registry_lock:
                self._reconciliations[uid] = updated
        return updated
