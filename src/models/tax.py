"""
Tax Models for Personal Finance Core

These models describe a progressive (marginal) rate table and the result
of applying it to an amount.

DESIGN DECISION: Money and rates are Decimal, never float.
A tax figure that is off by a rounding artefact is a wrong tax figure.
Floats supplied by callers are converted through str() so that 0.15
stays 0.15 instead of 0.1499999999999999944488848768742172978818416595458984375.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Inputs that mean "this bracket has no upper bound"
UNBOUNDED_MARKERS = {"inf", "+inf", "infinity", "+infinity", "none", "null", ""}


def to_decimal(value: Any) -> Any:
    """Convert floats to Decimal through their shortest repr."""
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _is_unbounded_marker(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value == float("inf"):
        return True
    if isinstance(value, Decimal) and value.is_infinite() and value > 0:
        return True
    if isinstance(value, str) and value.strip().lower() in UNBOUNDED_MARKERS:
        return True
    return False


# =============================================================================
# ENUMS
# =============================================================================

class TaxType(str, Enum):
    """What a tax history entry was calculated for."""
    SALARY = "salary"    # PAYE on a monthly salary
    COMPANY = "company"  # Flat company tax on profit


# =============================================================================
# BRACKET TABLE
# =============================================================================

class Bracket(BaseModel):
    """
    One marginal tax tier.

    The rate applies only to the slice of an amount that falls between
    the previous bracket's upper bound (exclusive) and this bracket's
    upper bound (inclusive). An upper bound of None means the bracket
    is open-ended and must be the last one in its table.
    """
    model_config = ConfigDict(extra="forbid")

    upper_bound: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Inclusive upper edge of the bracket; None means unbounded"
    )
    rate: Decimal = Field(
        ...,
        ge=0,
        le=1,
        description="Marginal rate as a fraction (0.15 for 15%)"
    )
    lower_bound: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Optional explicit lower edge, checked against the previous bracket"
    )

    @field_validator("upper_bound", mode="before")
    @classmethod
    def normalize_unbounded(cls, v: Any) -> Any:
        """Map Infinity/None/"inf" to the None sentinel."""
        if _is_unbounded_marker(v):
            return None
        return to_decimal(v)

    @field_validator("rate", "lower_bound", mode="before")
    @classmethod
    def convert_floats(cls, v: Any) -> Any:
        return to_decimal(v)

    @property
    def is_unbounded(self) -> bool:
        return self.upper_bound is None

    def describe(self) -> str:
        """Short label for display, e.g. '15% up to 50,000'."""
        pct = f"{(self.rate * 100).normalize():f}%"
        if self.is_unbounded:
            return f"{pct} above"
        return f"{pct} up to {self.upper_bound:,}"


class BracketAllocation(BaseModel):
    """The slice of an amount that fell into one bracket, and the tax on it."""

    bracket: Bracket
    taxable_amount: Decimal = Field(ge=0)
    tax: Decimal = Field(ge=0)


class LiabilityResult(BaseModel):
    """
    Result of applying a bracket table to an amount.

    breakdown lists every bracket the calculation visited, in order,
    so the figure can be shown and audited line by line.
    """

    amount: Decimal = Field(ge=0)
    total_tax: Decimal = Field(ge=0)
    effective_rate: Decimal = Field(
        ge=0,
        le=1,
        description="total_tax / amount, 0 when amount is 0"
    )
    breakdown: list[BracketAllocation] = Field(default_factory=list)

    @property
    def marginal_rate(self) -> Decimal:
        """Rate of the highest bracket that received a non-empty slice."""
        taxed = [line for line in self.breakdown if line.taxable_amount > 0]
        if not taxed:
            return Decimal("0")
        return taxed[-1].bracket.rate

    @property
    def net_amount(self) -> Decimal:
        """Amount left after tax."""
        return self.amount - self.total_tax


# =============================================================================
# TAX HISTORY
# =============================================================================

class TaxEntry(BaseModel):
    """
    A saved tax calculation.

    These are appended to the user's tax history so they can see
    what they computed and when the next remittance falls due.
    """

    tax_type: TaxType
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Salary or profit the tax was calculated on"
    )
    calculated_tax: Decimal = Field(ge=0)
    entry_date: date = Field(
        ...,
        description="Date the entry was saved"
    )
    next_due_date: date = Field(
        ...,
        description="When the next remittance is due"
    )

    @field_validator("amount", "calculated_tax", mode="before")
    @classmethod
    def convert_floats(cls, v: Any) -> Any:
        return to_decimal(v)

    @model_validator(mode="after")
    def validate_dates(self) -> "TaxEntry":
        if self.next_due_date < self.entry_date:
            raise ValueError("Next due date cannot be before entry date")
        return self
