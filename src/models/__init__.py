"""
Data Models Package

This package contains all Pydantic models used in Personal Finance Core.
All data flowing through the system must conform to these schemas.
"""

from src.models.tax import (
    Bracket,
    BracketAllocation,
    LiabilityResult,
    TaxEntry,
    TaxType,
)
from src.models.health import (
    HealthFactor,
    HealthLevel,
    HealthScoreSnapshot,
    WeightedFactor,
)
from src.models.planning import (
    BudgetCategory,
    BudgetStatus,
    BudgetSummary,
    CategoryStatus,
    GoalProgress,
    SavingsGoal,
)
from src.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Tax models
    "Bracket",
    "BracketAllocation",
    "LiabilityResult",
    "TaxEntry",
    "TaxType",
    # Health models
    "HealthFactor",
    "HealthLevel",
    "HealthScoreSnapshot",
    "WeightedFactor",
    # Planning models
    "BudgetCategory",
    "BudgetStatus",
    "BudgetSummary",
    "CategoryStatus",
    "GoalProgress",
    "SavingsGoal",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
