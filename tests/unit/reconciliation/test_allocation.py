# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from camrecon.core.exceptions import InvalidInputError, InvalidLeaseTermsError, NotDraftError
from camrecon.core.primitives import (
    AllocationMethodEnum,
    CreditPrecedenceEnum,
    ExpenseCategoryEnum,
    ReconciliationSettings,
    quantize,
)
from camrecon.reconciliation import AllocationEngine, Reconciliation

from tests.conftest import make_expense, make_terms, terms_map


def _single_tenant(amount, **terms_kwargs):
    """One 10,000 SF tenant in a 10,000 SF building with a fixed pool."""
    return (
        [make_expense(amount, ExpenseCategoryEnum.PROPERTY_TAX)],
        terms_map(make_terms("T", 10_000, **terms_kwargs)),
        Decimal("10000"),
    )


class TestProRataAllocation:
    """Test shares, credits and ordering for pro-rata allocation."""

    def test_expense_stop_scenario(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        result = engine.calculate(draft, two_tenant_expenses, two_tenant_terms, 100_000)

        a, b = result.items
        assert (a.tenant_id, b.tenant_id) == ("A", "B")
        assert a.share_percent == Decimal("0.4")
        assert b.share_percent == Decimal("0.6")
        assert a.pre_cap_amount == Decimal("80000")
        assert b.pre_cap_amount == Decimal("120000")
        assert b.expense_stop_credit == Decimal("50000")
        assert a.allocated_amount == Decimal("80000.00")
        assert b.allocated_amount == Decimal("70000.00")
        assert result.total_allocated == Decimal("150000.00")
        assert result.errors == ()

    def test_full_period_items_are_not_prorated(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        result = engine.calculate(draft, two_tenant_expenses, two_tenant_terms, 100_000)
        for item in result.items:
            assert item.proration_factor == Decimal("1")
            assert item.occupied_days == item.period_days == 366

    def test_calculate_is_idempotent(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        first = engine.calculate(draft, two_tenant_expenses, two_tenant_terms, 100_000)
        second = engine.calculate(draft, two_tenant_expenses, two_tenant_terms, 100_000)
        assert first.items == second.items
        assert first.model_dump(mode="json") == second.model_dump(mode="json")

    def test_storage_rows_accepted(self, engine, draft):
        expenses = [{"category": "insurance", "amount": "1000.00", "is_variable": None, "id": 1}]
        terms = {"t-1": {"leased_sf": "500", "cam_cap_type": None, "excluded_categories": None}}
        result = engine.calculate(draft, expenses, terms, "1000")
        assert result.items[0].allocated_amount == Decimal("500.00")


class TestExclusions:
    """Test removal of excluded categories before the share is taken."""

    def test_excluded_amount_is_removed_before_share(self, engine, draft, two_tenant_expenses):
        terms = terms_map(
            make_terms("A", 40_000, excluded_categories={ExpenseCategoryEnum.INSURANCE}),
            make_terms("B", 60_000),
        )
        result = engine.calculate(draft, two_tenant_expenses, terms, 100_000)
        a = result.items[0]
        assert a.excluded_amount == Decimal("50000")
        assert a.pre_cap_amount == Decimal("60000")
        assert result.items[1].excluded_amount == Decimal("0")

    def test_excluding_absent_category_has_no_effect(self, engine, draft, two_tenant_expenses):
        terms = terms_map(make_terms("A", 40_000, excluded_categories={ExpenseCategoryEnum.HVAC}))
        result = engine.calculate(draft, two_tenant_expenses, terms, 100_000)
        assert result.items[0].excluded_amount == Decimal("0")
        assert result.items[0].pre_cap_amount == Decimal("80000")


def test_admin_fee_on_post_exclusion_share(engine, draft, two_tenant_expenses):
    terms = terms_map(
        make_terms(
            "A",
            40_000,
            admin_fee_percent=Decimal("10"),
            excluded_categories={ExpenseCategoryEnum.INSURANCE},
        )
    )
    item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
    assert item.admin_fee == Decimal("6000")
    assert item.allocable_amount == Decimal("66000")
    assert item.allocated_amount == Decimal("66000.00")


class TestCredits:
    """Test base-year and expense-stop credits and their precedence."""

    def test_base_year_credit(self, engine, draft, two_tenant_expenses):
        terms = terms_map(make_terms("A", 40_000, base_year=2022, base_year_amount=Decimal("30000")))
        item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
        assert item.base_year_credit == Decimal("30000")
        assert item.expense_stop_credit == Decimal("0")
        assert item.allocated_amount == Decimal("50000.00")

    def test_per_sf_expense_stop(self, engine, draft, two_tenant_expenses):
        terms = terms_map(
            make_terms("A", 40_000, expense_stop_amount=Decimal("1.25"), expense_stop_per_sf=True)
        )
        item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
        assert item.expense_stop_credit == Decimal("50000")
        assert item.allocated_amount == Decimal("30000.00")

    def test_credit_never_exceeds_allocable_amount(self, engine, draft, two_tenant_expenses):
        terms = terms_map(make_terms("A", 40_000, expense_stop_amount=Decimal("250000")))
        item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
        assert item.expense_stop_credit == Decimal("80000")
        assert item.allocated_amount == Decimal("0.00")

    def test_base_year_wins_by_default_when_both_are_set(self, engine, draft, two_tenant_expenses):
        terms = terms_map(
            make_terms(
                "B",
                60_000,
                base_year=2022,
                base_year_amount=Decimal("20000"),
                expense_stop_amount=Decimal("50000"),
            )
        )
        item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
        assert item.base_year_credit == Decimal("20000")
        assert item.expense_stop_credit == Decimal("0")
        assert item.allocated_amount == Decimal("100000.00")

    def test_base_year_without_amount_still_suppresses_expense_stop(self, engine, draft, two_tenant_expenses):
        terms = terms_map(make_terms("A", 40_000, base_year=2022, expense_stop_amount=Decimal("20000")))
        item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
        assert item.base_year_credit == Decimal("0")
        assert item.expense_stop_credit == Decimal("0")
        assert item.allocated_amount == Decimal("80000.00")

    def test_expense_stop_precedence_with_base_year_only(self, engine, draft, two_tenant_expenses):
        terms = terms_map(
            make_terms(
                "A",
                40_000,
                base_year=2022,
                expense_stop_amount=Decimal("20000"),
                credit_precedence=CreditPrecedenceEnum.EXPENSE_STOP,
            )
        )
        item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
        assert item.expense_stop_credit == Decimal("20000")
        assert item.allocated_amount == Decimal("60000.00")

    def test_expense_stop_precedence_flag(self, engine, draft, two_tenant_expenses):
        terms = terms_map(
            make_terms(
                "B",
                60_000,
                base_year=2022,
                base_year_amount=Decimal("20000"),
                expense_stop_amount=Decimal("50000"),
                credit_precedence=CreditPrecedenceEnum.EXPENSE_STOP,
            )
        )
        item = engine.calculate(draft, two_tenant_expenses, terms, 100_000).items[0]
        assert item.base_year_credit == Decimal("0")
        assert item.expense_stop_credit == Decimal("50000")
        assert item.allocated_amount == Decimal("70000.00")


class TestCamCap:
    """Test cumulative and compounded cap ceilings."""

    def test_cumulative_cap(self, engine, draft):
        expenses, terms, building = _single_tenant(
            12_500,
            cam_cap_type="cumulative",
            cam_cap_percent=Decimal("5"),
            cam_cap_base_amount=Decimal("10000"),
            cam_cap_base_year=2022,
        )
        item = engine.calculate(draft, expenses, terms, building).items[0]
        assert item.cam_cap_ceiling == Decimal("11000")
        assert item.cam_cap_applied == Decimal("1500")
        assert item.allocated_amount == Decimal("11000.00")

    def test_compounded_cap(self, engine, draft):
        expenses, terms, building = _single_tenant(
            12_500,
            cam_cap_type="compounded",
            cam_cap_percent=Decimal("5"),
            cam_cap_base_amount=Decimal("10000"),
            cam_cap_base_year=2022,
        )
        item = engine.calculate(draft, expenses, terms, building).items[0]
        assert item.cam_cap_ceiling == Decimal("11025")
        assert item.cam_cap_applied == Decimal("1475")
        assert item.allocated_amount == Decimal("11025.00")

    def test_cap_above_amount_applies_nothing(self, engine, draft):
        expenses, terms, building = _single_tenant(
            9_000, cam_cap_type="cumulative", cam_cap_percent=Decimal("5"), cam_cap_base_amount=Decimal("10000")
        )
        item = engine.calculate(draft, expenses, terms, building).items[0]
        assert item.cam_cap_ceiling == Decimal("10000")
        assert item.cam_cap_applied == Decimal("0")
        assert item.allocated_amount == Decimal("9000.00")

    def test_cap_base_falls_back_to_base_year_amount(self, engine, draft):
        expenses, terms, building = _single_tenant(
            12_500,
            cam_cap_type="cumulative",
            cam_cap_percent=Decimal("5"),
            base_year=2023,
            base_year_amount=Decimal("10000"),
        )
        item = engine.calculate(draft, expenses, terms, building).items[0]
        assert item.base_year_credit == Decimal("10000")
        assert item.cam_cap_ceiling == Decimal("10500")
        assert item.cam_cap_applied == Decimal("0")
        assert item.allocated_amount == Decimal("2500.00")

    def test_future_cap_base_year_does_not_escalate(self, engine, draft):
        expenses, terms, building = _single_tenant(
            12_500,
            cam_cap_type="compounded",
            cam_cap_percent=Decimal("5"),
            cam_cap_base_amount=Decimal("10000"),
            cam_cap_base_year=2026,
        )
        item = engine.calculate(draft, expenses, terms, building).items[0]
        assert item.cam_cap_ceiling == Decimal("10000")

    def test_cap_without_any_base_is_a_tenant_error(self, engine, draft):
        expenses, terms, building = _single_tenant(
            12_500, cam_cap_type="cumulative", cam_cap_percent=Decimal("5")
        )
        result = engine.calculate(draft, expenses, terms, building)
        assert result.items == ()
        assert result.errors[0].tenant_id == "T"
        assert "cam_cap_base_amount or base_year_amount" in result.errors[0].reasons[0]


class TestProration:
    """Test occupancy windows and the proration factor."""

    def test_partial_year_proration(self, engine, draft):
        expenses, terms, building = _single_tenant(36_600, proration_start=date(2024, 7, 1))
        item = engine.calculate(draft, expenses, terms, building).items[0]
        assert item.occupied_days == 184
        assert quantize(item.proration_factor, Decimal("0.0001")) == Decimal("0.5027")
        assert item.allocated_amount == Decimal("18400.00")

    def test_occupancy_window_and_area_override(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        occupancy = {
            "A": {"occupied_from": "2024-07-01"},
            "B": {"leased_sf": "30000"},
        }
        result = engine.calculate(draft, two_tenant_expenses, two_tenant_terms, 100_000, occupancy=occupancy)
        a, b = result.items
        assert a.occupied_days == 184
        assert a.allocated_amount == Decimal("40218.58")
        assert b.leased_sf == Decimal("30000")
        assert b.share_percent == Decimal("0.3")
        assert result.occupied_sf == Decimal("70000")

    def test_tenant_outside_period_allocates_zero(self, engine, draft, two_tenant_expenses):
        terms = terms_map(make_terms("A", 40_000, proration_end=date(2023, 12, 31)))
        result = engine.calculate(draft, two_tenant_expenses, terms, 100_000)
        item = result.items[0]
        assert item.occupied_days == 0
        assert item.proration_factor == Decimal("0")
        assert item.allocated_amount == Decimal("0.00")
        assert result.occupied_tenant_count == 0

    def test_occupancy_for_unknown_tenant_is_ignored(self, engine, draft, two_tenant_expenses, two_tenant_terms, caplog):
        result = engine.calculate(
            draft, two_tenant_expenses, two_tenant_terms, 100_000, occupancy={"Z": {"leased_sf": 5}}
        )
        assert [item.tenant_id for item in result.items] == ["A", "B"]
        assert "without lease terms" in caplog.text


def test_equal_share_skips_non_occupying_tenants(engine, two_tenant_expenses, two_tenant_terms):
    draft = Reconciliation.for_period("prop-1", "2024", allocation_method=AllocationMethodEnum.EQUAL_SHARE)
    terms = dict(two_tenant_terms)
    terms["C"] = make_terms("C", 5_000, proration_end=date(2023, 12, 31))

    result = engine.calculate(draft, two_tenant_expenses, terms, 100_000)

    a, b, c = result.items
    assert a.share_percent == b.share_percent == Decimal("0.5")
    assert c.share_percent == Decimal("0")
    assert a.allocated_amount == Decimal("100000.00")
    assert b.allocated_amount == Decimal("50000.00")
    assert c.allocated_amount == Decimal("0.00")


def test_gross_up_flows_into_tenant_items(engine, draft):
    expenses = [make_expense(40_000, ExpenseCategoryEnum.JANITORIAL)]
    terms = terms_map(make_terms("A", 80_000, has_gross_up=True, gross_up_occupancy_threshold=Decimal("95")))

    result = engine.calculate(draft, expenses, terms, 100_000)

    item = result.items[0]
    assert result.gross_up.grossed_up_total == Decimal("47500")
    assert item.gross_up_amount == Decimal("6000")
    assert item.allocated_amount == Decimal("38000.00")


def test_payments_set_balance_due(engine, draft, two_tenant_expenses, two_tenant_terms):
    result = engine.calculate(
        draft, two_tenant_expenses, two_tenant_terms, 100_000, payments={"A": "85000", "B": 60_000}
    )
    a, b = result.items
    assert a.amount_paid == Decimal("85000")
    assert a.balance_due == Decimal("-5000.00")
    assert b.balance_due == Decimal("10000.00")


class TestPartialFailure:
    """Test that one bad lease record never blocks the other tenants."""

    def test_invalid_mapping_is_collected(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        terms = dict(two_tenant_terms)
        terms["C"] = {"tenant_name": "Corner Cafe", "leased_sf": -5}

        result = engine.calculate(draft, two_tenant_expenses, terms, 100_000)

        assert [item.tenant_id for item in result.items] == ["A", "B"]
        (error,) = result.errors
        assert error.tenant_id == "C"
        assert error.code == "INVALID_LEASE_TERMS"
        assert error.reasons[0].startswith("leased_sf")
        assert error.describe().startswith("Tenant Corner Cafe skipped:")

    def test_tenant_larger_than_building(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        terms = dict(two_tenant_terms)
        terms["C"] = make_terms("C", 120_000)
        result = engine.calculate(draft, two_tenant_expenses, terms, 100_000)
        assert [error.tenant_id for error in result.errors] == ["C"]
        assert len(result.items) == 2
        assert result.occupied_sf == Decimal("100000")

    @pytest.mark.parametrize(
        "bad_terms",
        [
            {"leased_sf": 5_000, "cam_cap_type": "cumulative"},
            {"leased_sf": 5_000, "cam_cap_type": "cumulative", "cam_cap_percent": 5},
        ],
        ids=["cap-missing-settings", "cap-missing-base"],
    )
    def test_rejected_tenant_leaves_equal_share_roster(
        self, engine, two_tenant_expenses, two_tenant_terms, bad_terms
    ):
        draft = Reconciliation.for_period("prop-1", "2024", allocation_method=AllocationMethodEnum.EQUAL_SHARE)
        terms = {**two_tenant_terms, "C": bad_terms}

        result = engine.calculate(draft, two_tenant_expenses, terms, 100_000)

        assert [error.tenant_id for error in result.errors] == ["C"]
        assert result.occupied_tenant_count == 2
        assert result.occupied_sf == Decimal("100000")
        assert [item.share_percent for item in result.items] == [Decimal("0.5"), Decimal("0.5")]

    def test_key_mismatch_is_a_tenant_error(self, engine, draft, two_tenant_expenses):
        result = engine.calculate(draft, two_tenant_expenses, {"X": make_terms("A", 40_000)}, 100_000)
        assert result.items == ()
        assert result.errors[0].tenant_id == "X"

    def test_fail_on_tenant_error_raises(self, draft, two_tenant_expenses, two_tenant_terms):
        engine = AllocationEngine(ReconciliationSettings(fail_on_tenant_error=True))
        terms = dict(two_tenant_terms)
        terms["C"] = {"leased_sf": 0}
        with pytest.raises(InvalidLeaseTermsError) as exc_info:
            engine.calculate(draft, two_tenant_expenses, terms, 100_000)
        assert exc_info.value.tenant_id == "C"


class TestStructuralErrors:
    """Test input problems that abort the whole calculation."""

    def test_finalized_reconciliation_rejected(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        final = draft.model_copy(update={"is_finalized": True, "finalized_at": datetime.now(timezone.utc)})
        with pytest.raises(NotDraftError):
            engine.calculate(final, two_tenant_expenses, two_tenant_terms, 100_000)

    @pytest.mark.parametrize("building", [0, -100, "abc"])
    def test_invalid_building_area(self, engine, draft, two_tenant_expenses, two_tenant_terms, building):
        with pytest.raises(InvalidInputError) as exc_info:
            engine.calculate(draft, two_tenant_expenses, two_tenant_terms, building)
        assert exc_info.value.field == "building_total_sf"

    def test_empty_expense_set(self, engine, draft, two_tenant_terms):
        with pytest.raises(InvalidInputError):
            engine.calculate(draft, [], two_tenant_terms, 100_000)

    def test_expenses_outside_period_only(self, engine, draft, two_tenant_terms):
        expenses = [make_expense(100, expense_date=date(2023, 5, 1))]
        with pytest.raises(InvalidInputError):
            engine.calculate(draft, expenses, two_tenant_terms, 100_000)

    def test_no_lease_terms(self, engine, draft, two_tenant_expenses):
        with pytest.raises(InvalidInputError):
            engine.calculate(draft, two_tenant_expenses, {}, 100_000)

    def test_negative_payment(self, engine, draft, two_tenant_expenses, two_tenant_terms):
        with pytest.raises(InvalidInputError):
            engine.calculate(draft, two_tenant_expenses, two_tenant_terms, 100_000, payments={"A": -1})

    def test_invalid_expense_row(self, engine, draft, two_tenant_terms):
        with pytest.raises(InvalidInputError):
            engine.calculate(draft, [{"amount": "-5"}], two_tenant_terms, 100_000)
