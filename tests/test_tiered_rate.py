"""
Tests for the tiered (marginal) rate calculator.

The PAYE figures below use the MRA 2025 example table:
15% to 50,000, 20% to 100,000, 25% to 150,000, 30% above.
"""

import pytest
from decimal import Decimal

from src.calculators import (
    ConfigurationError,
    InvalidInputError,
    TieredRateCalculator,
    compute_liability,
    flat_rate_brackets,
    validate_brackets,
)
from src.config import default_paye_brackets
from src.models.tax import Bracket


THREE_TIER = [(50000, "0.15"), (100000, "0.20"), (None, "0.25")]
PAYE = [(50000, "0.15"), (100000, "0.20"), (150000, "0.25"), (None, "0.30")]


class TestComputeLiability:
    """Tests for compute_liability."""

    def test_paye_example(self):
        """Test 120,000 under the PAYE table owes 22,500 at 18.75%."""
        result = compute_liability(120000, PAYE)
        assert result.total_tax == Decimal("22500")
        assert result.effective_rate == Decimal("0.1875")

    def test_breakdown_lists_visited_brackets(self):
        """Test the breakdown shows each slice and stops once allocated."""
        result = compute_liability(120000, PAYE)
        assert [line.taxable_amount for line in result.breakdown] == [
            Decimal("50000"), Decimal("50000"), Decimal("20000"),
        ]
        assert [line.tax for line in result.breakdown] == [
            Decimal("7500"), Decimal("10000"), Decimal("5000"),
        ]

    def test_amount_on_boundary_taxed_at_lower_rate(self):
        """Test an amount equal to a bound is taxed entirely at the lower rate."""
        result = compute_liability(50000, THREE_TIER)
        assert result.total_tax == Decimal("7500")
        assert len(result.breakdown) == 1

    def test_no_cliff_above_boundary(self):
        """Test one cent over a bound adds tax only on that cent."""
        at_bound = compute_liability(50000, THREE_TIER)
        above = compute_liability(50000.01, THREE_TIER)
        assert above.total_tax == Decimal("7500.002")
        assert above.total_tax - at_bound.total_tax == Decimal("0.002")

    def test_zero_amount(self):
        """Test zero owes nothing and has an effective rate of 0."""
        result = compute_liability(0, PAYE)
        assert result.total_tax == Decimal("0")
        assert result.effective_rate == Decimal("0")

    def test_monotonic_in_amount(self):
        """Test tax never decreases as the amount grows."""
        amounts = [0, 1, 49999.99, 50000, 50000.01, 99999, 100000, 100001,
                   150000, 150000.5, 250000, 10_000_000]
        taxes = [compute_liability(a, PAYE).total_tax for a in amounts]
        assert taxes == sorted(taxes)

    def test_tax_bounded_by_amount(self):
        """Test tax is non-negative and effective rate within the top rate."""
        for amount in (1, 75000, 500000):
            result = compute_liability(amount, PAYE)
            assert Decimal("0") <= result.total_tax <= result.amount
            assert result.effective_rate <= Decimal("0.30")

    def test_large_amounts_are_exact(self):
        """Test amounts with more than 28 digits are taxed without rounding."""
        amount = Decimal("1234567890123456789012345678.9")

        flat = TieredRateCalculator.flat(1).compute_liability(amount)
        assert flat.total_tax == amount
        assert flat.effective_rate == Decimal("1")

        result = compute_liability(amount, PAYE)
        assert result.total_tax == Decimal("370370367037037036703688703.67")
        assert result.total_tax <= result.amount
        assert result.effective_rate <= Decimal("0.30")

    def test_amount_beyond_supported_digits_rejected(self):
        """Test an amount too wide to compute exactly is rejected."""
        with pytest.raises(InvalidInputError, match="significant digits"):
            compute_liability(Decimal("1E+2000"), PAYE)

    def test_top_bracket_is_open_ended(self):
        """Test amounts far above the last bound land in the unbounded bracket."""
        result = compute_liability(1_000_000, PAYE)
        # 7,500 + 10,000 + 12,500 + 850,000 * 0.30
        assert result.total_tax == Decimal("285000")
        assert result.marginal_rate == Decimal("0.30")

    def test_accepts_bracket_models_and_mappings(self):
        """Test the table may be given as models or mappings."""
        as_models = [Bracket(upper_bound=u, rate=r) for u, r in PAYE]
        as_mappings = [{"upper_bound": u, "rate": r} for u, r in PAYE]
        assert compute_liability(120000, as_models).total_tax == Decimal("22500")
        assert compute_liability(120000, as_mappings).total_tax == Decimal("22500")

    def test_zero_width_first_bracket_allowed(self):
        """Test a first bracket ending at 0 taxes nothing."""
        result = compute_liability(100, [(0, "0.1"), (None, "0.2")])
        assert result.total_tax == Decimal("20")

    def test_negative_amount_rejected(self):
        """Test a negative amount raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            compute_liability(-1, PAYE)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), "120000", None, True])
    def test_non_numeric_or_non_finite_rejected(self, amount):
        """Test NaN, infinity, strings, None and booleans are rejected."""
        with pytest.raises(InvalidInputError):
            compute_liability(amount, PAYE)


class TestValidateBrackets:
    """Tests for bracket table validation."""

    def test_descending_table_rejected(self):
        """Test [(100, .1), (50, .2)] is a configuration error."""
        with pytest.raises(ConfigurationError):
            compute_liability(10, [(100, "0.1"), (50, "0.2")])

    def test_empty_table_rejected(self):
        """Test an empty table is a configuration error."""
        with pytest.raises(ConfigurationError, match="empty"):
            validate_brackets([])

    def test_last_bracket_must_be_unbounded(self):
        """Test a table that does not cover every amount is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_brackets([(100, "0.1"), (200, "0.2")])
        assert any("unbounded" in p for p in exc_info.value.problems)

    def test_unbounded_bracket_must_be_last(self):
        """Test an open-ended bracket in the middle is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_brackets([(None, "0.1"), (100, "0.2")])
        assert any("must be the last one" in p for p in exc_info.value.problems)

    def test_equal_bounds_rejected(self):
        """Test bounds must be strictly ascending."""
        with pytest.raises(ConfigurationError):
            validate_brackets([(100, "0.1"), (100, "0.2"), (None, "0.3")])

    def test_rate_out_of_range_rejected(self):
        """Test a rate above 1 is rejected."""
        with pytest.raises(ConfigurationError):
            validate_brackets([(100, "0.1"), (None, "1.5")])

    def test_gap_detected(self):
        """Test an explicit lower bound above the previous bound is a gap."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_brackets([
                {"upper_bound": 100, "rate": "0.1"},
                {"lower_bound": 150, "upper_bound": None, "rate": "0.2"},
            ])
        assert any("gap" in p for p in exc_info.value.problems)

    def test_overlap_detected(self):
        """Test an explicit lower bound below the previous bound is an overlap."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_brackets([
                {"upper_bound": 100, "rate": "0.1"},
                {"lower_bound": 50, "upper_bound": None, "rate": "0.2"},
            ])
        assert any("overlap" in p for p in exc_info.value.problems)

    def test_matching_lower_bounds_accepted(self):
        """Test explicit lower bounds that meet the previous bound are fine."""
        table = validate_brackets([
            {"lower_bound": 0, "upper_bound": 100, "rate": "0.1"},
            {"lower_bound": 100, "upper_bound": None, "rate": "0.2"},
        ])
        assert len(table) == 2

    def test_unrecognized_entry_rejected(self):
        """Test entries that are neither models, mappings nor pairs are rejected."""
        with pytest.raises(ConfigurationError):
            validate_brackets(["15%", (None, "0.3")])

    def test_every_problem_reported(self):
        """Test all problems are collected, not just the first."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_brackets([(100, "0.1"), (50, "0.2"), (40, "0.3")])
        assert len(exc_info.value.problems) >= 3


class TestTieredRateCalculator:
    """Tests for the calculator bound to a table."""

    def test_invalid_table_fails_at_construction(self):
        """Test a broken table fails when the calculator is built."""
        with pytest.raises(ConfigurationError):
            TieredRateCalculator([(100, "0.1"), (50, "0.2")])

    def test_default_paye_table(self):
        """Test the configured default PAYE table."""
        calculator = TieredRateCalculator(default_paye_brackets())
        assert calculator.compute_liability(120000).total_tax == Decimal("22500")
        assert len(calculator.brackets) == 4

    def test_flat_company_rate(self):
        """Test company tax is 30% of profit with a single bracket."""
        calculator = TieredRateCalculator.flat(0.30)
        result = calculator.compute_liability(10000)
        assert result.total_tax == Decimal("3000")
        assert result.effective_rate == Decimal("0.3")

    def test_flat_rate_brackets(self):
        """Test the flat table is one unbounded bracket."""
        table = flat_rate_brackets("0.3")
        assert len(table) == 1
        assert table[0].is_unbounded

    def test_brackets_copy(self):
        """Test callers cannot alter the calculator's table."""
        calculator = TieredRateCalculator(PAYE)
        calculator.brackets.clear()
        assert len(calculator.brackets) == 4


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
