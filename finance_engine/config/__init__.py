"""Configuration package."""

from finance_engine.config.settings import (
    AppSettings,
    EngineSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    Settings,
    TextProviderSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "EngineSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "Settings",
    "TextProviderSettings",
    "get_settings",
    "validate_all_settings",
]
