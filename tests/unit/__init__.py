# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for camrecon components.

Each module is exercised in isolation with hand-built expenses and lease
terms from ``tests.conftest``.
"""
