# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
camrecon test suite.

Unit tests per module, end-to-end reconciliation scenarios, and
hypothesis property tests for the allocation invariants.
"""
