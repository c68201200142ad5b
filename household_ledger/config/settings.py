"""
Configuration Management for Household Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets record store configuration."""

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

    # One worksheet per record collection
    expenses_sheet_name: str = Field(default="expenses")
    income_sheet_name: str = Field(default="income")
    debt_sheet_name: str = Field(default="debt")
    savings_sheet_name: str = Field(default="savings")
    totals_sheet_name: str = Field(default="total_expenses")
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


class ExchangeRateSettings(BaseSettings):
    """Live exchange rate provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_RATE_",
        extra="ignore"
    )

    base_url: str = Field(
        default="https://api.frankfurter.dev/v1",
        description="Rate provider base URL"
    )
    symbols: str = Field(
        default="USD",
        description="Comma-separated currency codes to request"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="HTTP timeout for one rate request"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts before giving up on the rate fetch"
    )


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

    # Money display
    display_locale: str = Field(
        default="de-DE",
        description="Locale used to format amounts"
    )
    base_currency: str = Field(
        default="EUR",
        pattern="^(EUR|USD)$",
        description="Pivot currency for all conversions"
    )

    # Debt ledger keying
    debt_month_includes_year: bool = Field(
        default=True,
        description=(
            "Key monthly debt records as 'March 2026' instead of bare 'March'. "
            "Turn off only to keep writing to a ledger with bare month labels."
        )
    )

    # CSV export
    export_directory: str = Field(
        default="exports",
        description="Directory CSV dumps are written to"
    )

    @property
    def export_path(self) -> Path:
        """Export directory as a Path."""
        return Path(self.export_directory)


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def exchange_rate(self) -> ExchangeRateSettings:
        return ExchangeRateSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
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
        _ = settings.exchange_rate
        results["exchange_rate"] = True
    except Exception as e:
        results["exchange_rate"] = False
        results["exchange_rate_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
