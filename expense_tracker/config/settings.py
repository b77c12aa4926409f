"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from tzlocal import get_localzone


class LedgerSettings(BaseSettings):
    """Ledger store and projection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone for day/month buckets (system local if unset)"
    )
    locale: str = Field(
        default="zh_CN",
        description="Locale used for currency display"
    )
    recent_transactions_limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="How many recent transactions the home view publishes (all if unset)"
    )
    seed_defaults: bool = Field(
        default=True,
        description="Create default books, accounts and categories on first run"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Persistence backend: memory or google_sheets"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Fail at startup on an unknown timezone name."""
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> tzinfo:
        """Timezone that defines bucket boundaries."""
        if self.timezone:
            return ZoneInfo(self.timezone)
        return get_localzone()


DEFAULT_MODELS = {
    "http": "deepseek-chat",
    "gemini": "gemini-1.5-flash",
}


class AdvisorSettings(BaseSettings):
    """AI advisory endpoint configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ADVISOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    provider: str = Field(
        default="http",
        pattern="^(http|gemini)$",
        description="Completion backend: http (chat-completions JSON API) or gemini"
    )
    api_url: str = Field(
        default="https://api.deepseek.com/v1/chat/completions",
        description="Chat-completions endpoint for the http provider"
    )
    api_key: str = Field(
        default="",
        description="API key for the completion backend"
    )
    model_name: Optional[str] = Field(
        default=None,
        description="Model to use (provider default if unset)"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Upper bound for one advisory request"
    )
    max_snapshot_transactions: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Most recent transactions included in the prompt"
    )
    response_language: str = Field(
        default="Simplified Chinese",
        description="Language the advisor should answer in"
    )

    @property
    def model(self) -> str:
        """Configured model, or the default for the selected provider."""
        return self.model_name or DEFAULT_MODELS[self.provider]


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    accounts_sheet_name: str = Field(default="Accounts")
    categories_sheet_name: str = Field(default="Categories")
    books_sheet_name: str = Field(default="Books")
    transactions_sheet_name: str = Field(default="Transactions")
    budgets_sheet_name: str = Field(default="Budgets")
    sequences_sheet_name: str = Field(default="Sequences")
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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def advisor(self) -> AdvisorSettings:
        return AdvisorSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


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

    Returns a dict of {setting_name: is_valid} plus an
    "<name>_error" entry for each section that failed to load.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "advisor", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
