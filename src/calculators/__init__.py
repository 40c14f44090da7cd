"""
Calculators Package

Pure functions: plain numbers and models in, plain numbers and models out.
Nothing here touches storage, configuration or logging.
"""

from src.calculators.errors import (
    CalculatorError,
    ConfigurationError,
    InvalidInputError,
)
from src.calculators.tiered_rate import (
    TieredRateCalculator,
    compute_liability,
    flat_rate_brackets,
    validate_brackets,
)
from src.calculators.weighted_score import (
    NO_DATA_SCORE,
    WeightedScoreAggregator,
    aggregate,
    classify_health,
)
from src.calculators.thresholds import (
    add_months,
    budget_status,
    days_until,
    goal_progress,
    summarize_budgets,
    utilisation_percent,
    weekly_target,
    weeks_remaining,
)

__all__ = [
    # Errors
    "CalculatorError",
    "ConfigurationError",
    "InvalidInputError",
    # Tiered rate
    "TieredRateCalculator",
    "compute_liability",
    "flat_rate_brackets",
    "validate_brackets",
    # Weighted score
    "NO_DATA_SCORE",
    "WeightedScoreAggregator",
    "aggregate",
    "classify_health",
    # Thresholds
    "add_months",
    "budget_status",
    "days_until",
    "goal_progress",
    "summarize_budgets",
    "utilisation_percent",
    "weekly_target",
    "weeks_remaining",
]
