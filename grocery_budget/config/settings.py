"""
Configuration Management for Grocery Budget

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable thresholds live here.
Alert tiers, tip limits and trend sensitivity are read once at startup
and passed explicitly into the engine, never referenced as module globals.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets ledger storage configuration."""

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
    budgets_sheet_name: str = Field(
        default="Budgets",
        description="Name of the sheet for budgets"
    )
    items_sheet_name: str = Field(
        default="Items",
        description="Name of the sheet for purchased items"
    )
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for categories"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Alert tiers (percentage of total limit spent)
    alert_info_threshold: float = Field(
        default=50.0,
        gt=0,
        description="Percentage spent that triggers an info alert"
    )
    alert_warning_threshold: float = Field(
        default=75.0,
        gt=0,
        description="Percentage spent that triggers a warning alert"
    )
    alert_critical_threshold: float = Field(
        default=90.0,
        gt=0,
        description="Percentage spent that triggers a critical alert"
    )
    category_alert_percentage: float = Field(
        default=80.0,
        gt=0,
        description="Percentage of a category allocation that triggers a category alert"
    )

    # Trend analysis
    trend_change_ratio: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Relative change between halves needed to call a trend"
    )
    default_trend_window_days: int = Field(
        default=30,
        ge=1,
        le=366,
        description="Default look-back window for spending trends"
    )

    # Tips
    max_tips: int = Field(
        default=8,
        ge=1,
        description="Maximum number of tips generated for a user"
    )
    tips_per_response: int = Field(
        default=3,
        ge=0,
        description="Tips attached to a write response"
    )
    duplicate_purchase_threshold: int = Field(
        default=3,
        ge=2,
        description="Purchases of the same item before it counts as a duplicate"
    )
    price_increase_alert_percent: float = Field(
        default=10.0,
        ge=0.0,
        description="Price increase (first vs last purchase) that raises a price alert"
    )

    # Audit
    audit_retention_days: int = Field(
        default=90,
        ge=1,
        description="How long audit events are kept"
    )

    @model_validator(mode='after')
    def validate_alert_tiers(self) -> 'AppSettings':
        """Alert tiers must be strictly ascending."""
        if not (
            self.alert_info_threshold
            < self.alert_warning_threshold
            < self.alert_critical_threshold
        ):
            raise ValueError(
                "Alert thresholds must be ascending: info < warning < critical"
            )
        return self

    @property
    def alert_thresholds(self) -> dict[str, float]:
        """Alert tiers keyed by level name."""
        return {
            "info": self.alert_info_threshold,
            "warning": self.alert_warning_threshold,
            "critical": self.alert_critical_threshold,
        }


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

    # Sub-settings are loaded lazily so the app runs without Sheets configured

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
