"""Tests for settings validation and environment loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings, get_settings


class TestSettingsValidation:
    """Field validators reject bad configuration."""

    def test_log_level_is_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")

    def test_price_band_must_be_ordered(self):
        with pytest.raises(ValidationError):
            Settings(momentum_min_price=100.0, momentum_max_price=50.0)

    def test_cors_origins_from_comma_string(self):
        settings = Settings(cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_instrument_concurrency_bounds(self):
        with pytest.raises(ValidationError):
            Settings(instrument_concurrency=0)


class TestEnvironmentLoading:
    """Settings read overrides from the environment."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MOMENTUM_SORTINO_CAP", "3.5")
        monkeypatch.setenv("SCHEDULER_ENABLED", "false")

        settings = Settings()

        assert settings.momentum_sortino_cap == 3.5
        assert settings.scheduler_enabled is False

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
