"""
Tests for configuration loading.
"""

import pytest

from familysync.config import (
    AppSettings,
    GeminiSettings,
    get_settings,
    validate_all_settings,
)


class TestAppSettings:
    """Tests for the FAMILYSYNC_ settings."""

    def test_defaults(self, monkeypatch):
        """Test the built-in defaults."""
        for name in ("STORAGE_KEY", "DATA_DIR", "CALENDAR_LOOKAHEAD_DAYS", "MONOTONIC_LIFETIME_POINTS"):
            monkeypatch.delenv(f"FAMILYSYNC_{name}", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.storage_key == "familySyncData"
        assert settings.calendar_lookahead_days == 30
        assert settings.monotonic_lifetime_points is False
        assert settings.data_path.name == ".familysync"

    def test_env_override(self, monkeypatch):
        """Test environment variables are read with the prefix."""
        monkeypatch.setenv("FAMILYSYNC_MONOTONIC_LIFETIME_POINTS", "true")
        monkeypatch.setenv("FAMILYSYNC_CALENDAR_LOOKAHEAD_DAYS", "14")
        assert get_settings().app.monotonic_lifetime_points is True
        assert get_settings().app.calendar_lookahead_days == 14

    def test_default_chore_points(self, monkeypatch):
        """Test the points pre-filled in the chore form come from settings."""
        monkeypatch.delenv("FAMILYSYNC_DEFAULT_CHORE_POINTS", raising=False)
        assert AppSettings(_env_file=None).default_chore_points == 50

        monkeypatch.setenv("FAMILYSYNC_DEFAULT_CHORE_POINTS", "25")
        assert get_settings().app.default_chore_points == 25

    def test_default_chore_points_not_negative(self):
        """Test a negative default is rejected."""
        with pytest.raises(ValueError):
            AppSettings(default_chore_points=-5, _env_file=None)

    def test_storage_key_rejects_paths(self):
        """Test the storage key cannot escape the data directory."""
        with pytest.raises(ValueError):
            AppSettings(storage_key="../etc/passwd", _env_file=None)


class TestServiceSettings:
    """Tests for optional service configuration."""

    def test_gemini_optional(self):
        """Test a missing key leaves Gemini unconfigured."""
        assert GeminiSettings(api_key=None, _env_file=None).is_configured is False
        assert GeminiSettings(api_key="abc", _env_file=None).is_configured is True

    def test_validate_all_settings_reports_missing(self, monkeypatch):
        """Test missing keys are reported, not raised."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
        status = validate_all_settings()
        assert status["app"] is True
        assert status["gemini"] is False
        assert status["gemini_error"] == "GEMINI_API_KEY is not set"
        assert status["google"] is False
