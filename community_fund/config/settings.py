"""
Configuration Management for the Community Fund Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger storage and reconciliation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FUND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_path: str = Field(
        default=".community_fund/community_fund_data.json",
        description="Path of the local JSON blob holding the ledger"
    )
    strict_validation: bool = Field(
        default=False,
        description="Reject negative amounts instead of flagging them"
    )
    currency_label: str = Field(
        default="Rs.",
        description="Prefix used when formatting amounts for display"
    )
    max_period_amount: float = Field(
        default=10_000_000.0,
        gt=0,
        description="Largest plausible monthly amount in PKR (for sanity checking)"
    )

    @field_validator('storage_path')
    @classmethod
    def validate_storage_path(cls, v: str) -> str:
        """Storage path must not be blank."""
        if not v.strip():
            raise ValueError("storage_path cannot be empty")
        return v.strip()


class GeminiSettings(BaseSettings):
    """Gemini seed data generator configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=8192,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature (higher = more varied sample data)"
    )
    seed_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times to try fetching seed records"
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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
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

    # Sub-settings are loaded lazily so a missing Gemini key
    # does not stop the ledger from running on stored data.

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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

    for name in ("ledger", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
