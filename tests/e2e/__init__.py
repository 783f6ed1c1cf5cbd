# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
End-to-end tests for camrecon.

Complete reconciliation workflows, from raw expense and lease records to a
finalized, reported reconciliation.
"""
