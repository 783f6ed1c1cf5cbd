# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
camrecon Reporting

Tenant-facing reconciliation statements as dictionaries, pandas DataFrames
and CSV text.
"""

from .report import ReconciliationReport

__all__ = [
    "ReconciliationReport",
]
