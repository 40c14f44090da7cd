"""
Configuration Management for Personal Finance Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, including the
tax table. A bracket table is configuration, not code: it changes every
budget year. It is validated when it is loaded, so a broken table stops
the application at startup instead of producing a wrong tax figure.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.calculators.errors import ConfigurationError
from src.calculators.tiered_rate import validate_brackets
from src.models.tax import Bracket


def default_paye_brackets() -> list[Bracket]:
    """Example MRA PAYE table (2025)."""
    return [
        Bracket(upper_bound=50000, rate="0.15"),
        Bracket(upper_bound=100000, rate="0.20"),
        Bracket(upper_bound=150000, rate="0.25"),
        Bracket(upper_bound=None, rate="0.30"),
    ]


class TaxSettings(BaseSettings):
    """
    Tax tables and remittance schedule.

    TAX_PAYE_BRACKETS may be given as JSON, e.g.
    [{"upper_bound": 50000, "rate": 0.15}, {"upper_bound": null, "rate": 0.3}]
    """

    model_config = SettingsConfigDict(
        env_prefix="TAX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    paye_brackets: list[Bracket] = Field(
        default_factory=default_paye_brackets,
        description="Progressive PAYE table, ascending, last bracket unbounded"
    )
    company_tax_rate: float = Field(
        default=0.30,
        ge=0.0,
        le=1.0,
        description="Flat company tax rate on profit"
    )
    reminder_window_days: int = Field(
        default=3,
        ge=1,
        le=31,
        description="Remind about remittances due within this many days"
    )
    remittance_interval_months: int = Field(
        default=1,
        ge=1,
        le=12,
        description="Months between a saved entry and its next due date"
    )
    currency: str = Field(
        default="MWK",
        min_length=3,
        max_length=3,
        description="ISO currency code for display"
    )

    @field_validator("paye_brackets")
    @classmethod
    def validate_table(cls, v: list[Bracket]) -> list[Bracket]:
        """Reject a malformed table at load time."""
        try:
            return validate_brackets(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e


class HealthScoreSettings(BaseSettings):
    """Health score bands."""

    model_config = SettingsConfigDict(
        env_prefix="HEALTH_",
        extra="ignore"
    )

    excellent_threshold: float = Field(default=80, ge=0, le=100)
    good_threshold: float = Field(default=65, ge=0, le=100)
    fair_threshold: float = Field(default=50, ge=0, le=100)
    poor_threshold: float = Field(default=35, ge=0, le=100)

    @field_validator("poor_threshold")
    @classmethod
    def validate_order(cls, v: float, info: ValidationInfo) -> float:
        """Bands must be strictly descending from excellent to poor."""
        data = info.data
        chain = [
            data.get("excellent_threshold"),
            data.get("good_threshold"),
            data.get("fair_threshold"),
            v,
        ]
        if None not in chain and not all(a > b for a, b in zip(chain, chain[1:])):
            raise ValueError("Health thresholds must be strictly descending")
        return v

    @property
    def thresholds(self) -> tuple[float, float, float, float]:
        return (
            self.excellent_threshold,
            self.good_threshold,
            self.fair_threshold,
            self.poor_threshold,
        )


class BudgetSettings(BaseSettings):
    """Budget utilisation thresholds (percent)."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        extra="ignore"
    )

    warning_threshold_pct: float = Field(
        default=80,
        ge=0,
        description="Utilisation at which a category turns to warning"
    )
    over_threshold_pct: float = Field(
        default=100,
        ge=0,
        description="Utilisation at which a category is over budget"
    )
    alert_threshold_pct: float = Field(
        default=90,
        ge=0,
        description="Utilisation at which a dashboard alert is raised"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    documents_sheet_name: str = Field(
        default="Documents",
        description="Name of the sheet holding user documents"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    max_amount: float = Field(
        default=1_000_000_000.0,
        gt=0,
        description="Largest amount accepted from a form (sanity check)"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def tax(self) -> TaxSettings:
        return TaxSettings()

    @property
    def health(self) -> HealthScoreSettings:
        return HealthScoreSettings()

    @property
    def budget(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error for each section that failed to load.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("tax", "health", "budget", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
