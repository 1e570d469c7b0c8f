"""
Configuration Management for Aquamitra

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The allocation rate, the occupant fallback and the timezones used for
bucketing live in one place instead of being repeated per dashboard view.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Household records (jurisdiction and occupants)"
    )
    employees_sheet_name: str = Field(
        default="Employees",
        description="Administrators and their assigned state"
    )
    events_sheet_name: str = Field(
        default="ConsumptionEvents",
        description="Append-only consumption event log"
    )
    complaints_sheet_name: str = Field(
        default="Complaints",
        description="Household complaints"
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

    # Allocation
    per_capita_daily_rate: float = Field(
        default=55.0,
        gt=0,
        description="Daily allocation per occupant (volume units)"
    )
    default_occupant_count: Optional[int] = Field(
        default=4,
        gt=0,
        description="Occupant count used when an account has none recorded. "
                    "Unset to treat a missing count as an error."
    )

    # Calendar handling
    default_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone used when a dashboard query declares none"
    )
    ingest_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone in which ingested timestamps are written"
    )
    ingest_timestamp_format: str = Field(
        default="%d-%m-%Y %H:%M:%S",
        description="strptime format of ingested timestamps"
    )
    daily_window_days: int = Field(
        default=7,
        ge=1,
        le=366,
        description="Trailing days shown in daily rollups"
    )

    @field_validator('default_timezone', 'ingest_timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Timezones must be resolvable IANA names."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise ValueError(f"Unknown IANA timezone: {v}")
        return v

    @property
    def default_tz(self) -> ZoneInfo:
        """Get the default timezone as a tzinfo."""
        return ZoneInfo(self.default_timezone)

    @property
    def ingest_tz(self) -> ZoneInfo:
        """Get the ingestion timezone as a tzinfo."""
        return ZoneInfo(self.ingest_timezone)


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

    # Sub-settings are loaded lazily so the in-memory backend
    # works without any Google configuration.

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
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
