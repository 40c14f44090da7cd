"""
Tests for Personal Finance Core

Test strategy:
1. Unit tests for individual components (models, calculators, validators)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests (Google Sheets is never contacted)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

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
)
from src.models.planning import (
    BudgetCategory,
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


class TestBracketModel:
    """Tests for the Bracket model."""

    def test_bracket_creation(self):
        """Test Bracket creation with a finite bound."""
        bracket = Bracket(upper_bound=50000, rate="0.15")
        assert bracket.upper_bound == Decimal("50000")
        assert bracket.rate == Decimal("0.15")
        assert bracket.is_unbounded is False

    def test_float_rate_keeps_its_decimal_value(self):
        """Test that 0.15 becomes Decimal('0.15'), not a binary artefact."""
        bracket = Bracket(upper_bound=50000, rate=0.15)
        assert bracket.rate == Decimal("0.15")

    @pytest.mark.parametrize("marker", [None, float("inf"), "inf", "Infinity", "null", ""])
    def test_unbounded_markers(self, marker):
        """Test that every unbounded marker normalizes to None."""
        bracket = Bracket(upper_bound=marker, rate="0.30")
        assert bracket.upper_bound is None
        assert bracket.is_unbounded is True

    def test_rate_above_one_rejected(self):
        """Test that a rate above 100% is rejected."""
        with pytest.raises(ValueError):
            Bracket(upper_bound=1000, rate="1.5")

    def test_negative_rate_rejected(self):
        """Test that a negative rate is rejected."""
        with pytest.raises(ValueError):
            Bracket(upper_bound=1000, rate="-0.1")

    def test_unknown_field_rejected(self):
        """Test that a misspelt key is not silently ignored."""
        with pytest.raises(ValueError):
            Bracket(upperBound=1000, rate="0.1")

    def test_describe(self):
        """Test display labels."""
        assert Bracket(upper_bound=50000, rate="0.15").describe() == "15% up to 50,000"
        assert Bracket(upper_bound=None, rate="0.30").describe() == "30% above"


class TestLiabilityResult:
    """Tests for LiabilityResult helpers."""

    def test_marginal_rate_and_net_amount(self):
        """Test marginal rate is that of the last bracket with a slice."""
        low = Bracket(upper_bound=100, rate="0.1")
        high = Bracket(upper_bound=None, rate="0.2")
        result = LiabilityResult(
            amount=Decimal("150"),
            total_tax=Decimal("20"),
            effective_rate=Decimal("20") / Decimal("150"),
            breakdown=[
                BracketAllocation(bracket=low, taxable_amount=Decimal("100"), tax=Decimal("10")),
                BracketAllocation(bracket=high, taxable_amount=Decimal("50"), tax=Decimal("10")),
            ],
        )
        assert result.marginal_rate == Decimal("0.2")
        assert result.net_amount == Decimal("130")

    def test_marginal_rate_of_zero_amount(self):
        """Test that nothing taxed means a marginal rate of 0."""
        result = LiabilityResult(
            amount=Decimal("0"),
            total_tax=Decimal("0"),
            effective_rate=Decimal("0"),
        )
        assert result.marginal_rate == Decimal("0")


class TestTaxEntry:
    """Tests for saved tax entries."""

    def test_tax_entry_creation(self):
        """Test TaxEntry model creation."""
        entry = TaxEntry(
            tax_type=TaxType.SALARY,
            amount=120000.0,
            calculated_tax=22500.0,
            entry_date=date(2025, 1, 15),
            next_due_date=date(2025, 2, 15),
        )
        assert entry.amount == Decimal("120000.0")
        assert entry.tax_type == TaxType.SALARY

    def test_tax_entry_date_validation(self):
        """Test that next_due_date cannot be before entry_date."""
        with pytest.raises(ValueError, match="Next due date cannot be before entry date"):
            TaxEntry(
                tax_type=TaxType.COMPANY,
                amount=Decimal("1000"),
                calculated_tax=Decimal("300"),
                entry_date=date(2025, 2, 15),
                next_due_date=date(2025, 1, 15),
            )

    def test_tax_entry_json_round_trip(self):
        """Test the stored JSON form validates back into the same entry."""
        entry = TaxEntry(
            tax_type=TaxType.SALARY,
            amount=Decimal("60000"),
            calculated_tax=Decimal("9500"),
            entry_date=date(2025, 1, 31),
            next_due_date=date(2025, 2, 28),
        )
        stored = entry.model_dump(mode="json")
        assert stored["tax_type"] == "salary"
        assert TaxEntry.model_validate(stored) == entry


class TestHealthModels:
    """Tests for health models."""

    def test_health_factor_strips_whitespace(self):
        """Test that whitespace is stripped from factor names."""
        factor = HealthFactor(factor="  Savings Rate  ", score=70)
        assert factor.factor == "Savings Rate"
        assert factor.weight is None

    def test_health_factor_score_bounds(self):
        """Test score must be between 0 and 100."""
        with pytest.raises(ValueError):
            HealthFactor(factor="Debt", score=120)

    def test_health_factor_negative_weight_rejected(self):
        """Test that weights cannot be negative."""
        with pytest.raises(ValueError):
            HealthFactor(factor="Debt", score=50, weight=-1)

    def test_health_level_labels(self):
        """Test level labels and descriptions."""
        assert HealthLevel.EXCELLENT.label == "Excellent Health"
        assert HealthLevel.CRITICAL.description.startswith("Immediate attention")

    def test_snapshot_change(self):
        """Test movement since the previous score."""
        snapshot = HealthScoreSnapshot(score=72, previous_score=65, level=HealthLevel.GOOD)
        assert snapshot.change == 7
        assert snapshot.has_data is False

    def test_snapshot_without_previous_score(self):
        """Test that change is None with no previous score."""
        snapshot = HealthScoreSnapshot(score=0)
        assert snapshot.change is None
        assert snapshot.level is None


class TestPlanningModels:
    """Tests for budget and goal models."""

    def test_budget_remaining(self):
        """Test remaining budget."""
        category = BudgetCategory(name="Groceries", budget=500.0, spent=120.5)
        assert category.remaining == Decimal("379.5")

    def test_budget_rejects_negative_spending(self):
        """Test that negative spending is rejected."""
        with pytest.raises(ValueError):
            BudgetCategory(name="Fuel", budget=100, spent=-5)

    def test_goal_requires_positive_target(self):
        """Test that a goal target must be above zero."""
        with pytest.raises(ValueError):
            SavingsGoal(name="Car", target=0, deadline=date(2026, 1, 1))


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TAX_CALCULATED,
            description="Salary tax calculated",
        )
        assert event.event_type == AuditEventType.TAX_CALCULATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TAX_ENTRY_SAVED,
            description="Tax entry saved",
            details={"tax_type": "salary", "calculated_tax": "22500"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "tax_entry_saved"
        assert log_dict["details"]["tax_type"] == "salary"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.HEALTH_FACTOR_UPDATED,
            description="User changed a factor score",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "health_factor_updated"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_tax_calculated(self):
        """Test AuditEventBuilder.tax_calculated."""
        correlation_id = uuid4()

        event = AuditEventBuilder.tax_calculated(
            tax_type="salary",
            amount="120000",
            total_tax="22500",
            effective_rate="0.1875",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TAX_CALCULATED
        assert event.correlation_id == correlation_id
        assert event.details["total_tax"] == "22500"
        assert event.is_user_action is False

    def test_audit_event_builder_calculation_rejected(self):
        """Test AuditEventBuilder.calculation_rejected."""
        event = AuditEventBuilder.calculation_rejected(
            calculation="salary tax",
            error_type="InvalidInputError",
            error_message="Amount cannot be negative",
            correlation_id=uuid4(),
        )

        assert event.event_type == AuditEventType.CALCULATION_REJECTED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "InvalidInputError"

    def test_audit_event_builder_tax_entry_saved(self):
        """Test AuditEventBuilder.tax_entry_saved."""
        event = AuditEventBuilder.tax_entry_saved(
            user_id="user-1",
            tax_type="company",
            calculated_tax="3000",
            next_due_date="2025-02-15",
            correlation_id=uuid4(),
        )

        assert event.user_id == "user-1"
        assert event.is_user_action is True


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            accepted_count=0,
            rejected_count=1,
            issues=[
                ValidationIssue(
                    record_index=0,
                    field="score",
                    issue_type="invalid_format",
                    message="Factor 0 score: 'abc' is not a number",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            accepted_count=2,
            rejected_count=0,
            issues=[
                ValidationIssue(
                    field="weight",
                    issue_type="unweighted",
                    message="No weights given",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["No weights given"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
