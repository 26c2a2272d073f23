"""Configuration package."""

from profit_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    SessionSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "SessionSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
