#!/usr/bin/env python3
# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Annual CAM Reconciliation Example

Year-end Common Area Maintenance reconciliation for a partly vacant
neighborhood retail center, run end to end through camrecon's public API.

## Property Overview

- Rentable area: 60,000 SF, 80% leased (48,000 SF)
- 2024 recoverable operating expenses: ~$412K across taxes, insurance,
  utilities and upkeep
- A roof replacement booked as a capital item is not CAM-recoverable
- A December 2023 invoice posted late falls outside the period

## Tenant Roster

1. **Grocer** (24,000 SF): anchor lease with a 95% gross-up provision,
   5% compounded CAM cap off a 2021 base, and no share of marketing
2. **Pharmacy** (12,000 SF): base year 2022, 10% admin fee
3. **Fitness** (8,000 SF): $6.50/SF expense stop
4. **Cafe** (4,000 SF): moved in July 1, prorated for the half year
5. **Salon**: lease record missing its cap settings, reported and skipped

## Workflow

1. Create a draft for calendar 2024
2. Calculate allocations (gross-up, exclusions, credits, caps, proration)
3. Record estimated CAM payments collected during the year
4. Finalize and print the tenant statement tables
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from camrecon import api
from camrecon.core.primitives import format_currency
from camrecon.reconciliation import Reconciliation


def build_expenses():
    """Operating expense rows as a bookkeeping system would export them."""
    return [
        {"category": "property_tax", "amount": "148500.00", "expense_date": date(2024, 11, 30)},
        {"category": "insurance", "amount": "41200.00", "expense_date": date(2024, 2, 1)},
        {"category": "utilities_electric", "amount": "52800.00", "expense_date": date(2024, 12, 31)},
        {"category": "utilities_water", "amount": "18350.00", "expense_date": date(2024, 12, 31)},
        {"category": "janitorial", "amount": "38400.00", "expense_date": date(2024, 12, 31)},
        {"category": "landscaping", "amount": "22900.00", "expense_date": date(2024, 10, 15)},
        {"category": "security", "amount": "31750.00", "expense_date": date(2024, 12, 31)},
        {"category": "parking_lot", "amount": "14600.00", "expense_date": date(2024, 6, 12)},
        {"category": "marketing", "amount": "9800.00", "expense_date": date(2024, 5, 20)},
        {"category": "management_fee", "amount": "33900.00", "expense_date": date(2024, 12, 31)},
        {
            "category": "roof_repair",
            "amount": "186000.00",
            "expense_date": date(2024, 8, 1),
            "is_cam_recoverable": False,
            "description": "Roof replacement (capital)",
        },
        {
            "category": "other",
            "amount": "7450.00",
            "expense_date": date(2023, 12, 20),
            "description": "Snow removal, posted late",
        },
    ]


def build_lease_terms():
    """Lease provision snapshot keyed by tenant id."""
    return {
        "grocer": {
            "tenant_name": "Fresh Fields Market",
            "leased_sf": 24000,
            "has_gross_up": True,
            "gross_up_occupancy_threshold": 95,
            "cam_cap_type": "compounded",
            "cam_cap_percent": 5,
            "cam_cap_base_amount": 140000,
            "cam_cap_base_year": 2021,
            "excluded_categories": ["marketing"],
        },
        "pharmacy": {
            "tenant_name": "Corner Drug",
            "leased_sf": 12000,
            "base_year": 2022,
            "base_year_amount": 68000,
            "admin_fee_percent": 10,
        },
        "fitness": {
            "tenant_name": "Iron Works Gym",
            "leased_sf": 8000,
            "expense_stop_amount": "6.50",
            "expense_stop_per_sf": True,
        },
        "cafe": {
            "tenant_name": "Daily Grind",
            "leased_sf": 4000,
            "proration_start": date(2024, 7, 1),
        },
        "salon": {
            "tenant_name": "Shear Genius",
            "leased_sf": 3000,
            "cam_cap_type": "cumulative",
        },
    }


ESTIMATED_PAYMENTS = {
    "grocer": Decimal("148000"),
    "pharmacy": Decimal("24000"),
    "fitness": Decimal("6000"),
    "cafe": Decimal("15000"),
}


def main():
    """Run the reconciliation and print the tenant statement."""
    draft = Reconciliation.for_period("maple-commons", "2024")

    calculated = api.calculate(
        draft,
        expenses=build_expenses(),
        lease_terms_by_tenant=build_lease_terms(),
        building_total_sf=60000,
    )
    paid = api.record_payments(calculated, ESTIMATED_PAYMENTS)
    final = api.finalize(paid)
    report = api.build_report(final, expenses=build_expenses())

    totals = report.totals
    print("=" * 80)
    print("MAPLE COMMONS - 2024 CAM RECONCILIATION")
    print("=" * 80)
    print(f"Recoverable expenses:   {format_currency(totals['total_cam_expenses'])}")
    print(f"Gross-up:               {format_currency(totals['total_gross_up'])}")
    print(f"Grossed-up pool:        {format_currency(totals['grossed_up_total'])}")
    print(f"Allocated to tenants:   {format_currency(totals['total_allocated'])}")
    print(f"Collected:              {format_currency(totals['total_collected'])}")
    print(f"Balance due:            {format_currency(totals['total_balance_due'])}")
    print(f"Unallocated (variance): {format_currency(totals['variance'])}")
    print()

    print("EXPENSE BREAKDOWN:")
    print("-" * 40)
    print(report.category_breakdown_df().to_string(index=False))
    print()

    print("TENANT ALLOCATIONS:")
    print("-" * 40)
    columns = ["tenant_name", "share_percent", "allocated_amount", "amount_paid", "balance_due"]
    print(report.tenant_allocations_df()[columns].to_string())
    print()

    for line in report.errors:
        print(f"Skipped: {line}")
    for issue in report.issues:
        print(f"Check: {issue}")

    return final


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    main()
