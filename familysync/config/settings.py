"""
Configuration Management for FamilySync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
External services (Gemini, Google) are optional: when their keys are
missing the app keeps working and the matching features degrade to
empty results.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (chore icons and suggestions)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key (assistant disabled when empty)"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class GoogleSettings(BaseSettings):
    """Google identity / calendar / photos configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    client_id: Optional[str] = Field(
        default=None,
        description="OAuth client ID used by the sign-in flow"
    )
    scopes: str = Field(
        default=(
            "openid profile email "
            "https://www.googleapis.com/auth/calendar "
            "https://www.googleapis.com/auth/calendar.events "
            "https://www.googleapis.com/auth/photoslibrary.readonly"
        ),
        description="Space separated OAuth scopes"
    )

    @property
    def scopes_list(self) -> list[str]:
        return self.scopes.split()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FAMILYSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_family_name: str = Field(
        default="My Family",
        description="Family name used when nothing was saved yet"
    )

    # Persistence
    storage_key: str = Field(
        default="familySyncData",
        min_length=1,
        description="Fixed key the state blob is stored under"
    )
    data_dir: str = Field(
        default=".familysync",
        description="Directory holding the local state files"
    )

    # Ledger behaviour
    monotonic_lifetime_points: bool = Field(
        default=False,
        description="Keep lifetime points as a high-water mark on un-completion"
    )
    default_chore_points: int = Field(
        default=50,
        ge=0,
        description="Points pre-filled when creating a chore"
    )

    # Calendar / weather
    calendar_lookahead_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="How many days ahead calendar sync looks"
    )
    weather_latitude: float = Field(
        default=40.7128,
        ge=-90.0,
        le=90.0,
    )
    weather_longitude: float = Field(
        default=-74.0060,
        ge=-180.0,
        le=180.0,
    )

    @field_validator("storage_key")
    @classmethod
    def validate_storage_key(cls, v: str) -> str:
        """The key becomes a file name, so path separators are not allowed."""
        if "/" in v or "\\" in v:
            raise ValueError("storage_key must not contain path separators")
        return v

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)


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

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def google(self) -> GoogleSettings:
        return GoogleSettings()

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
    Check which parts of the configuration are usable.

    Returns a dict of {setting_name: is_valid} plus
    `<name>_error` entries describing what is missing.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    try:
        gemini = settings.gemini
        results["gemini"] = gemini.is_configured
        if not gemini.is_configured:
            results["gemini_error"] = "GEMINI_API_KEY is not set"
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        google = settings.google
        results["google"] = bool(google.client_id)
        if not google.client_id:
            results["google_error"] = "GOOGLE_CLIENT_ID is not set"
    except Exception as e:
        results["google"] = False
        results["google_error"] = str(e)

    return results
