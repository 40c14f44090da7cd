"""Configuration package."""

from src.config.settings import (
    AppSettings,
    BudgetSettings,
    GoogleSheetsSettings,
    HealthScoreSettings,
    Settings,
    TaxSettings,
    default_paye_brackets,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BudgetSettings",
    "GoogleSheetsSettings",
    "HealthScoreSettings",
    "Settings",
    "TaxSettings",
    "default_paye_brackets",
    "get_settings",
    "validate_all_settings",
]
