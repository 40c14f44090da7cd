"""
Financial Health Models

A health score is a weighted blend of independently scored factors
(savings behaviour, debt ratio, emergency fund, ...).

DESIGN DECISION: Weights are relative, not fractions of one.
A factor without a weight gets an implicit uniform weight at
aggregation time, so partially weighted profiles still work.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthLevel(str, Enum):
    """Banded reading of a 0-100 health score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"

    @property
    def label(self) -> str:
        return f"{self.value.capitalize()} Health"

    @property
    def description(self) -> str:
        return _LEVEL_DESCRIPTIONS[self]


_LEVEL_DESCRIPTIONS = {
    HealthLevel.EXCELLENT: "Your finances are thriving! Keep up the great work.",
    HealthLevel.GOOD: "Your financial health is strong with room for improvement.",
    HealthLevel.FAIR: "Your finances need attention in some areas.",
    HealthLevel.POOR: "Focus on building stronger financial foundations.",
    HealthLevel.CRITICAL: "Immediate attention needed for financial stability.",
}


class WeightedFactor(BaseModel):
    """One scored dimension contributing to an aggregate score."""

    score: float = Field(
        ...,
        description="Performance on this dimension (conventionally 0-100)"
    )
    weight: Optional[float] = Field(
        default=None,
        ge=0,
        description="Relative weight; None means uniform weight"
    )


class HealthFactor(WeightedFactor):
    """
    A factor as stored on the user's financial profile.

    Carries the display metadata alongside the score and weight.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    factor: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Factor name, e.g. 'Savings Rate'"
    )
    score: float = Field(
        ...,
        ge=0,
        le=100,
        description="Score on this factor (0-100)"
    )
    impact: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)
    target: Optional[str] = None
    current: Optional[str] = None


class HealthScoreSnapshot(BaseModel):
    """A computed health score and the factors it came from."""

    score: int = Field(
        ...,
        description="Weighted, rounded score; 0 means no data"
    )
    previous_score: Optional[int] = None
    level: Optional[HealthLevel] = Field(
        default=None,
        description="Health band; None when there were no usable factors"
    )
    factors: list[HealthFactor] = Field(default_factory=list)
    last_updated: datetime = Field(
        default_factory=datetime.utcnow
    )

    @property
    def change(self) -> Optional[int]:
        """Movement since the previous score, if one was recorded."""
        if self.previous_score is None:
            return None
        return self.score - self.previous_score

    @property
    def has_data(self) -> bool:
        return len(self.factors) > 0
