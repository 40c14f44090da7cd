"""
Tests for configuration loading.
"""

import pytest
from decimal import Decimal

from pydantic import ValidationError

from src.config import (
    AppSettings,
    BudgetSettings,
    GoogleSheetsSettings,
    HealthScoreSettings,
    TaxSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture
def no_sheets_env(monkeypatch):
    monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
    monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)


class TestTaxSettings:
    """Tests for TaxSettings."""

    def test_defaults(self):
        """Test the default PAYE table and schedule."""
        settings = TaxSettings()
        assert [b.rate for b in settings.paye_brackets] == [
            Decimal("0.15"), Decimal("0.20"), Decimal("0.25"), Decimal("0.30"),
        ]
        assert settings.paye_brackets[-1].is_unbounded
        assert settings.company_tax_rate == 0.30
        assert settings.reminder_window_days == 3
        assert settings.remittance_interval_months == 1

    def test_table_from_environment(self, monkeypatch):
        """Test a PAYE table supplied as JSON in the environment."""
        monkeypatch.setenv(
            "TAX_PAYE_BRACKETS",
            '[{"upper_bound": 1000, "rate": 0.1}, {"upper_bound": null, "rate": 0.2}]',
        )
        settings = TaxSettings()
        assert len(settings.paye_brackets) == 2
        assert settings.paye_brackets[0].upper_bound == Decimal("1000")

    def test_malformed_table_rejected_at_load(self):
        """Test a descending table fails when settings are loaded."""
        with pytest.raises(ValidationError, match="not above previous bound"):
            TaxSettings(paye_brackets=[
                {"upper_bound": 100, "rate": 0.1},
                {"upper_bound": 50, "rate": 0.2},
                {"upper_bound": None, "rate": 0.3},
            ])

    def test_company_rate_bounds(self):
        """Test the company rate must be a fraction."""
        with pytest.raises(ValidationError):
            TaxSettings(company_tax_rate=30)


class TestHealthScoreSettings:
    """Tests for HealthScoreSettings."""

    def test_default_thresholds(self):
        """Test the default bands."""
        assert HealthScoreSettings().thresholds == (80, 65, 50, 35)

    def test_thresholds_must_descend(self):
        """Test out-of-order bands are rejected."""
        with pytest.raises(ValidationError, match="strictly descending"):
            HealthScoreSettings(good_threshold=90)

    def test_only_threshold_fields(self):
        """Test the section holds the four band thresholds and nothing else."""
        assert set(HealthScoreSettings.model_fields) == {
            "excellent_threshold", "good_threshold", "fair_threshold", "poor_threshold",
        }


class TestOtherSettings:
    """Tests for budget, app and storage settings."""

    def test_budget_defaults(self):
        """Test the default budget thresholds."""
        settings = BudgetSettings()
        assert settings.warning_threshold_pct == 80
        assert settings.over_threshold_pct == 100
        assert settings.alert_threshold_pct == 90

    def test_log_level_validated(self):
        """Test an unknown log level is rejected."""
        with pytest.raises(ValidationError):
            AppSettings(log_level="LOUD")

    def test_sheets_settings_required(self, no_sheets_env):
        """Test Google Sheets settings need credentials and a spreadsheet."""
        with pytest.raises(ValidationError):
            GoogleSheetsSettings()

    def test_get_settings_is_cached(self):
        """Test settings are loaded once."""
        assert get_settings() is get_settings()

    def test_validate_all_settings(self, no_sheets_env):
        """Test the startup check reports each section."""
        results = validate_all_settings()
        assert results["tax"] is True
        assert results["health"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
