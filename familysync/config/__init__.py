"""Configuration package."""

from familysync.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
