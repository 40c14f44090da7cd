"""
Weighted Score Aggregator

Blends independently scored factors into one whole-number score.

DESIGN DECISION: This function never raises. An empty profile, a
profile whose weights are all zero, a record that is not a valid
factor, or a non-finite intermediate value all resolve to 0, which
callers read as "no data". A missing health score is cosmetically
tolerable; a crashed health widget is not.
"""

import math
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

from pydantic import ValidationError

from src.calculators.rounding import round_half_up
from src.models.health import HealthLevel, WeightedFactor

# Returned when there is nothing meaningful to aggregate
NO_DATA_SCORE = 0

FactorLike = Union[WeightedFactor, Mapping[str, Any]]


def _as_factor(record: FactorLike) -> Optional[WeightedFactor]:
    """A WeightedFactor from a model, mapping or object; None if unusable."""
    if isinstance(record, WeightedFactor):
        return record
    try:
        if isinstance(record, Mapping):
            return WeightedFactor.model_validate(dict(record))
        return WeightedFactor.model_validate(record, from_attributes=True)
    except ValidationError:
        return None


def aggregate(factors: Sequence[FactorLike]) -> int:
    """
    Normalized weighted average of factor scores, rounded half-up.

    Factors may be WeightedFactor models or {"score", "weight"} records.
    Factors without an explicit weight get 1 / len(factors).
    Weights are relative: the sum is divided by the total weight present.
    A record that is not a usable factor makes the whole result NO_DATA_SCORE.
    """
    if not factors:
        return NO_DATA_SCORE

    parsed = [_as_factor(record) for record in factors]
    if any(factor is None for factor in parsed):
        return NO_DATA_SCORE

    uniform_weight = 1.0 / len(parsed)
    weights = [
        factor.weight if factor.weight is not None else uniform_weight
        for factor in parsed
    ]
    if not all(math.isfinite(weight) for weight in weights):
        return NO_DATA_SCORE

    largest = max(weights)
    if not largest > 0:
        return NO_DATA_SCORE

    # Scale into [0, 1] so very large weights cannot overflow the sums
    scaled = [weight / largest for weight in weights]
    total_weight = sum(scaled)
    weighted_sum = sum(factor.score * weight for factor, weight in zip(parsed, scaled))

    value = weighted_sum / total_weight
    if not math.isfinite(value):
        return NO_DATA_SCORE

    return round_half_up(value)


def classify_health(
    score: float,
    excellent: float = 80,
    good: float = 65,
    fair: float = 50,
    poor: float = 35,
) -> HealthLevel:
    """Map a 0-100 score to its health band (thresholds are inclusive)."""
    if score >= excellent:
        return HealthLevel.EXCELLENT
    if score >= good:
        return HealthLevel.GOOD
    if score >= fair:
        return HealthLevel.FAIR
    if score >= poor:
        return HealthLevel.POOR
    return HealthLevel.CRITICAL


class WeightedScoreAggregator:
    """Aggregator bound to a set of health band thresholds."""

    def __init__(
        self,
        excellent: float = 80,
        good: float = 65,
        fair: float = 50,
        poor: float = 35,
    ):
        self._thresholds = (excellent, good, fair, poor)

    def aggregate(self, factors: Sequence[FactorLike]) -> int:
        return aggregate(factors)

    def classify(self, score: float) -> HealthLevel:
        return classify_health(score, *self._thresholds)
