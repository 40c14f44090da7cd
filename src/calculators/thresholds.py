"""
Budget and Goal Threshold Helpers

Single-pass arithmetic over budgets and savings goals, plus the
calendar helpers used for tax remittance dates.
"""

import calendar
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Union

from src.calculators.rounding import ceil_int, round_half_up
from src.models.planning import (
    BudgetCategory,
    BudgetStatus,
    BudgetSummary,
    CategoryStatus,
    GoalProgress,
    SavingsGoal,
)

Number = Union[int, float, Decimal]
HUNDRED = Decimal("100")


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


# =============================================================================
# BUDGETS
# =============================================================================

def utilisation_percent(spent: Number, budget: Number) -> int:
    """Rounded percentage of budget spent; 0 when there is no budget."""
    budget = _dec(budget)
    if budget <= 0:
        return 0
    return round_half_up(_dec(spent) / budget * HUNDRED)


def budget_status(
    spent: Number,
    budget: Number,
    warning_pct: Number = 80,
    over_pct: Number = 100,
) -> BudgetStatus:
    """
    Classify spending against a budget.

    percentage >= over_pct    -> OVER
    percentage >= warning_pct -> WARNING
    otherwise                 -> SAFE

    A zero budget is OVER as soon as anything is spent.
    """
    spent, budget = _dec(spent), _dec(budget)

    if budget <= 0:
        return BudgetStatus.OVER if spent > 0 else BudgetStatus.SAFE

    percentage = spent / budget * HUNDRED
    if percentage >= _dec(over_pct):
        return BudgetStatus.OVER
    if percentage >= _dec(warning_pct):
        return BudgetStatus.WARNING
    return BudgetStatus.SAFE


def summarize_budgets(
    categories: Sequence[BudgetCategory],
    warning_pct: Number = 80,
    over_pct: Number = 100,
    alert_pct: Number = 90,
) -> BudgetSummary:
    """Totals, overall utilisation and per-category status for a set of budgets."""
    statuses = []
    alerts = []

    for category in categories:
        percent = utilisation_percent(category.spent, category.budget)
        status = budget_status(category.spent, category.budget, warning_pct, over_pct)
        statuses.append(CategoryStatus(
            name=category.name,
            budget=category.budget,
            spent=category.spent,
            percent_used=percent,
            status=status,
        ))

        if category.budget <= 0 and status == BudgetStatus.OVER:
            alerts.append(f"{category.name} has spending but no budget")
        elif percent >= _dec(alert_pct):
            alerts.append(f"{category.name} spending is {percent}% of budget")

    total_budget = sum((c.budget for c in categories), Decimal("0"))
    total_spent = sum((c.spent for c in categories), Decimal("0"))

    return BudgetSummary(
        total_budget=total_budget,
        total_spent=total_spent,
        overall_percent=utilisation_percent(total_spent, total_budget),
        categories=statuses,
        alerts=alerts,
    )


# =============================================================================
# SAVINGS GOALS
# =============================================================================

def weeks_remaining(deadline: date, today: date) -> int:
    """Whole weeks until the deadline, rounded up; 0 once it has passed."""
    days = (deadline - today).days
    return max(0, -(-days // 7))


def weekly_target(target: Number, deadline: date, today: date) -> int:
    """
    Whole amount to save each remaining week to reach target by deadline.

    With no weeks left the whole target is due now.
    """
    weeks = weeks_remaining(deadline, today)
    if weeks == 0:
        return ceil_int(target)
    return ceil_int(_dec(target) / weeks)


def goal_progress(goal: SavingsGoal, today: date) -> GoalProgress:
    ratio = goal.saved / goal.target
    percent = float(ratio * HUNDRED)
    return GoalProgress(
        name=goal.name,
        percent=percent,
        display_percent=min(percent, 100.0),
        is_completed=ratio >= 1,
        weeks_remaining=weeks_remaining(goal.deadline, today),
        weekly_target=weekly_target(goal.target, goal.deadline, today),
    )


# =============================================================================
# CALENDAR
# =============================================================================

def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic, clamped to the end of shorter months (Jan 31 + 1 -> Feb 28)."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def days_until(target: date, today: date) -> int:
    return (target - today).days
