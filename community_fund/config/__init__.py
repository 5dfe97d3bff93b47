"""Configuration package."""

from community_fund.config.settings import (
    AppSettings,
    GeminiSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
