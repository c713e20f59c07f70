# sitebudget/services/budget_impact.py
"""
Pure budget arithmetic shared by the proposal services, the alert service
and the analytics views. No database access here.

Every denominator that is <= 0 yields exactly Decimal("0"), never an error.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Union

from sitebudget.db.enums import ImpactType, UtilizationState
from sitebudget.schemas.dto.base_dto import BaseDTO

Number = Union[Decimal, int, str, float]

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# significance thresholds, in percent of the current budget
AMENDMENT_SIGNIFICANCE_THRESHOLD = Decimal("10")
CHANGE_ORDER_SIGNIFICANCE_THRESHOLD = Decimal("5")

# UI utilization state
UTILIZATION_CRITICAL = Decimal("90")
UTILIZATION_WARNING = Decimal("75")

# budget variance alerts
VARIANCE_WARNING_THRESHOLD = Decimal("80")
VARIANCE_CRITICAL_THRESHOLD = Decimal("95")

KIND_AMENDMENT = "amendment"
KIND_CHANGE_ORDER = "change_order"


def to_decimal(value: Number) -> Decimal:
    """
    Convert request / ORM values to Decimal. Floats go through str() so 0.1 stays 0.1.

    :raises ValueError: value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except ArithmeticError:
            raise ValueError(f"'{value}' is not a valid decimal number")
    if not result.is_finite():
        raise ValueError(f"'{value}' is not a finite number")
    return result


def percent_of(part: Number, whole: Number) -> Decimal:
    whole = to_decimal(whole)
    if whole <= ZERO:
        return ZERO
    return to_decimal(part) / whole * HUNDRED


def is_significant(amount: Number, budget: Number, threshold: Number) -> bool:
    '''
    A change is significant iff |amount / budget * 100| > threshold (strict).
    Against a budget <= 0 nothing is significant.
    '''
    return abs(percent_of(amount, budget)) > to_decimal(threshold)


def significance_threshold(kind: str) -> Decimal:
    if kind == KIND_AMENDMENT:
        return AMENDMENT_SIGNIFICANCE_THRESHOLD
    if kind == KIND_CHANGE_ORDER:
        return CHANGE_ORDER_SIGNIFICANCE_THRESHOLD
    raise ValueError(f"Unknown proposal kind: {kind}")


def utilization_state(percent: Number) -> UtilizationState:
    percent = to_decimal(percent)
    if percent >= UTILIZATION_CRITICAL:
        return UtilizationState.critical
    if percent >= UTILIZATION_WARNING:
        return UtilizationState.warning
    return UtilizationState.healthy


class BudgetImpact(BaseDTO):
    current_budget: Decimal
    proposed_amount: Decimal
    new_budget: Decimal
    percentage_change: Decimal
    current_spent: Decimal
    current_utilization: Decimal
    new_utilization: Decimal
    remaining_after: Decimal
    impact_type: ImpactType
    is_significant: bool


def preview_budget_impact(
    current_budget: Number,
    proposed_amount: Number,
    current_spent: Number,
    kind: str = KIND_AMENDMENT,
) -> BudgetImpact:
    """
    What the project's figures would look like if the proposal were approved.

    :param current_budget: Project budget before the change
    :param proposed_amount: Signed amountAdded / costImpact
    :param current_spent: Project consumed amount
    :param kind: "amendment" or "change_order", selects threshold and impact labels
    """
    current_budget = to_decimal(current_budget)
    proposed_amount = to_decimal(proposed_amount)
    current_spent = to_decimal(current_spent)

    new_budget = current_budget + proposed_amount

    if proposed_amount > ZERO:
        impact_type = ImpactType.increase
    elif proposed_amount < ZERO or kind == KIND_AMENDMENT:
        impact_type = ImpactType.decrease
    else:
        impact_type = ImpactType.none

    return BudgetImpact(
        current_budget=current_budget,
        proposed_amount=proposed_amount,
        new_budget=new_budget,
        percentage_change=percent_of(proposed_amount, current_budget),
        current_spent=current_spent,
        current_utilization=percent_of(current_spent, current_budget),
        new_utilization=percent_of(current_spent, new_budget),
        remaining_after=new_budget - current_spent,
        impact_type=impact_type,
        is_significant=is_significant(proposed_amount, current_budget, significance_threshold(kind)),
    )


class BudgetVariance(BaseDTO):
    spent_percentage: Decimal
    remaining_budget: Decimal
    status: UtilizationState
    is_over_budget: bool
    variance: Decimal  # positive = over budget


def calc_budget_variance(total_budget: Number, total_spent: Number) -> BudgetVariance:
    total_budget = to_decimal(total_budget)
    total_spent = to_decimal(total_spent)

    spent_percentage = percent_of(total_spent, total_budget)
    if spent_percentage >= VARIANCE_CRITICAL_THRESHOLD:
        status = UtilizationState.critical
    elif spent_percentage >= VARIANCE_WARNING_THRESHOLD:
        status = UtilizationState.warning
    else:
        status = UtilizationState.healthy

    return BudgetVariance(
        spent_percentage=spent_percentage.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        remaining_budget=total_budget - total_spent,
        status=status,
        is_over_budget=total_spent > total_budget,
        variance=total_spent - total_budget,
    )


# =========
# Cost allocation totals
# =========
def calc_material_total(rows: Iterable[Mapping[str, Number]]) -> Decimal:
    """Σ quantity × unit_price over material rows ({"quantity", "unit_price"})."""
    total = ZERO
    for row in rows:
        total += to_decimal(row["quantity"]) * to_decimal(row["unit_price"])
    return total


def calc_total_cost(labour_cost: Number, material_total: Number) -> Decimal:
    return to_decimal(labour_cost) + to_decimal(material_total)


def determine_cost_allocation_status(total_cost: Number, remaining_budget: Number) -> str:
    """Costs that fit in the remaining budget are approved outright, larger ones wait for approval."""
    if to_decimal(total_cost) > to_decimal(remaining_budget):
        return "pending"
    return "approved"
