"""
Budget and Savings Goal Models

Budgets and goals are simple records; the thresholds applied to them
live in src.calculators.thresholds.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.tax import to_decimal


class BudgetStatus(str, Enum):
    """How a category's spending compares to its budget."""
    SAFE = "safe"
    WARNING = "warning"  # Approaching the limit
    OVER = "over"        # At or past the limit


class BudgetCategory(BaseModel):
    """A spending category with its monthly budget."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name, e.g. 'Groceries'"
    )
    budget: Decimal = Field(
        ...,
        ge=0,
        description="Amount budgeted for the period"
    )
    spent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Amount spent so far"
    )

    @field_validator("budget", "spent", mode="before")
    @classmethod
    def convert_floats(cls, v: Any) -> Any:
        return to_decimal(v)

    @property
    def remaining(self) -> Decimal:
        return self.budget - self.spent


class CategoryStatus(BaseModel):
    """Evaluated state of one budget category."""

    name: str
    budget: Decimal
    spent: Decimal
    percent_used: int = Field(
        ...,
        ge=0,
        description="Rounded percentage of the budget spent"
    )
    status: BudgetStatus


class BudgetSummary(BaseModel):
    """Totals across all categories plus the per-category statuses."""

    total_budget: Decimal = Field(ge=0)
    total_spent: Decimal = Field(ge=0)
    overall_percent: int = Field(ge=0)
    categories: list[CategoryStatus] = Field(default_factory=list)
    alerts: list[str] = Field(
        default_factory=list,
        description="Human-readable alerts for categories near or over budget"
    )

    @property
    def over_budget(self) -> list[CategoryStatus]:
        return [c for c in self.categories if c.status == BudgetStatus.OVER]


class SavingsGoal(BaseModel):
    """A savings target with a deadline."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    target: Decimal = Field(
        ...,
        gt=0,
        description="Amount to save"
    )
    saved: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Amount saved so far"
    )
    deadline: date

    @field_validator("target", "saved", mode="before")
    @classmethod
    def convert_floats(cls, v: Any) -> Any:
        return to_decimal(v)


class GoalProgress(BaseModel):
    """Evaluated progress towards a savings goal."""

    name: str
    percent: float = Field(
        ...,
        ge=0,
        description="saved / target * 100, uncapped"
    )
    display_percent: float = Field(
        ...,
        ge=0,
        le=100,
        description="percent capped at 100 for progress bars"
    )
    is_completed: bool
    weeks_remaining: int = Field(ge=0)
    weekly_target: int = Field(
        ...,
        ge=0,
        description="Whole amount to set aside each remaining week"
    )
