# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
camrecon - CAM Reconciliation & Allocation Engine

Apportions a property's shared operating expenses across tenants according
to each tenant's lease provisions (exclusions, admin fee, base-year credits,
expense stops, CAM caps, gross-up and proration), and tracks what each
tenant owes against what they paid.

Key Entry Points:
- camrecon.api.calculate() - Allocate a draft reconciliation
- camrecon.api.finalize() - Lock a calculated reconciliation
- camrecon.api.build_report() - Tenant-facing statement tables
- camrecon.reconciliation.ReconciliationWorkspace - Serialized shared drafts

Example Usage:
    ```python
    from camrecon import api
    from camrecon.reconciliation import Reconciliation

    draft = Reconciliation.for_period("prop-1", "2024")
    draft = api.calculate(
        draft,
        expenses=[{"category": "janitorial", "amount": "40000"}],
        lease_terms_by_tenant={"t-1": {"leased_sf": 10000}},
        building_total_sf=50000,
    )
    final = api.finalize(draft)
    print(api.build_report(final).tenant_allocations_df())
    ```
"""

import importlib
import logging

# Libraries never configure handlers; applications attach their own.
logging.getLogger(__name__).addHandler(logging.NullHandler())


# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "api",
    "core",
    "reconciliation",
    "reporting",
]


_LAZY_MODULES = {
    "api": "camrecon.api",
    "core": "camrecon.core",
    "reconciliation": "camrecon.reconciliation",
    "reporting": "camrecon.reporting",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'camrecon' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
