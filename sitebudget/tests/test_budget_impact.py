# sitebudget/tests/test_budget_impact.py
from decimal import Decimal

import pytest

from sitebudget.db.enums import ImpactType, UtilizationState
from sitebudget.services.budget_impact import (
    calc_budget_variance,
    calc_material_total,
    calc_total_cost,
    determine_cost_allocation_status,
    is_significant,
    preview_budget_impact,
    to_decimal,
    utilization_state,
)


def test_scope_reduction_preview():
    impact = preview_budget_impact(Decimal("100000"), Decimal("-20000"), Decimal("40000"), "amendment")

    assert impact.new_budget == Decimal("80000")
    assert impact.new_utilization == Decimal("50")
    assert impact.current_utilization == Decimal("40")
    assert impact.percentage_change == Decimal("-20")
    assert impact.remaining_after == Decimal("40000")
    assert impact.impact_type == ImpactType.decrease
    assert impact.is_significant is True


@pytest.mark.parametrize("budget", [Decimal("0"), Decimal("-5000")])
def test_non_positive_budget_yields_zero_percentages(budget):
    impact = preview_budget_impact(budget, Decimal("500"), Decimal("100"), "amendment")

    assert impact.current_utilization == Decimal("0")
    assert impact.percentage_change == Decimal("0")
    assert impact.current_utilization.is_finite()
    assert impact.is_significant is False


def test_new_utilization_is_zero_when_new_budget_drops_to_zero():
    impact = preview_budget_impact(Decimal("1000"), Decimal("-1000"), Decimal("100"), "amendment")
    assert impact.new_budget == Decimal("0")
    assert impact.new_utilization == Decimal("0")


@pytest.mark.parametrize(
    "amount, budget, threshold, expected",
    [
        ("10000", "100000", "10", False),  # exactly 10 %
        ("10010", "100000", "10", True),  # 10.01 %
        ("-10000", "100000", "10", False),
        ("-10010", "100000", "10", True),
        ("5000", "100000", "5", False),  # exactly 5 %
        ("5001", "100000", "5", True),
        ("-5001", "100000", "5", True),
    ],
)
def test_significance_threshold_is_strict(amount, budget, threshold, expected):
    assert is_significant(Decimal(amount), Decimal(budget), Decimal(threshold)) is expected


def test_preview_uses_kind_threshold():
    # 6 % is significant for a change order but not for an amendment
    assert preview_budget_impact("100000", "6000", "0", "change_order").is_significant is True
    assert preview_budget_impact("100000", "6000", "0", "amendment").is_significant is False


def test_change_order_impact_labels():
    assert preview_budget_impact("1000", "0", "0", "change_order").impact_type == ImpactType.none
    assert preview_budget_impact("1000", "10", "0", "change_order").impact_type == ImpactType.increase
    assert preview_budget_impact("1000", "-10", "0", "change_order").impact_type == ImpactType.decrease


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        preview_budget_impact("1000", "10", "0", "transfer")


@pytest.mark.parametrize(
    "percent, state",
    [
        ("95", UtilizationState.critical),
        ("90", UtilizationState.critical),
        ("89.99", UtilizationState.warning),
        ("75", UtilizationState.warning),
        ("74.99", UtilizationState.healthy),
        ("0", UtilizationState.healthy),
    ],
)
def test_utilization_state(percent, state):
    assert utilization_state(Decimal(percent)) == state


def test_budget_variance():
    warning = calc_budget_variance(Decimal("1000"), Decimal("800"))
    assert warning.status == UtilizationState.warning
    assert warning.spent_percentage == Decimal("80.00")
    assert warning.remaining_budget == Decimal("200")
    assert warning.is_over_budget is False

    critical = calc_budget_variance(Decimal("1000"), Decimal("950"))
    assert critical.status == UtilizationState.critical

    over = calc_budget_variance(Decimal("1000"), Decimal("1200"))
    assert over.is_over_budget is True
    assert over.variance == Decimal("200")
    assert over.remaining_budget == Decimal("-200")

    empty = calc_budget_variance(Decimal("0"), Decimal("10"))
    assert empty.spent_percentage == Decimal("0")


def test_cost_allocation_totals():
    material_total = calc_material_total([{"quantity": Decimal("10"), "unit_price": Decimal("25")}])
    assert material_total == Decimal("250")
    assert calc_total_cost(Decimal("500"), material_total) == Decimal("750")

    assert calc_material_total([]) == Decimal("0")
    assert calc_total_cost(Decimal("0.01"), calc_material_total([])) == Decimal("0.01")


def test_cost_allocation_totals_are_exact_in_cents():
    rows = [
        {"quantity": "3", "unit_price": "19.99"},
        {"quantity": "2.5", "unit_price": "4.40"},
    ]
    assert calc_material_total(rows) == Decimal("70.97")
    assert calc_total_cost("1234.56", calc_material_total(rows)) == Decimal("1305.53")


def test_allocation_status_against_remaining_budget():
    assert determine_cost_allocation_status(Decimal("100"), Decimal("100")) == "approved"
    assert determine_cost_allocation_status(Decimal("100.01"), Decimal("100")) == "pending"


def test_to_decimal():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(" 12.50 ") == Decimal("12.50")
    with pytest.raises(ValueError):
        to_decimal("abc")
    with pytest.raises(ValueError):
        to_decimal("NaN")
