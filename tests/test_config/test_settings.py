"""Tests for harvester settings."""

import pytest
from pydantic import ValidationError

from harvester.config.settings import Settings, get_settings


class TestSettings:
    """Tests for Settings defaults and overrides."""

    def test_default_values(self, monkeypatch):
        """Should default to a one-page-per-pass worker on lock 1."""
        for name in ("LEASE_SECONDS", "LOCK_KEY", "PAGE_SIZE", "DOC_ID", "FETCH_MAX_RETRIES"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.lease_seconds == 15
        assert settings.lock_key == 1
        assert settings.page_size == 3
        assert settings.fetch_max_retries == 0
        assert settings.schedule_timezone == "UTC"
        assert settings.timeline_configured is False
        assert settings.metrics_push_enabled is False

    def test_env_override(self, monkeypatch):
        """Should allow environment variable overrides."""
        monkeypatch.setenv("LEASE_SECONDS", "45")
        monkeypatch.setenv("DOC_ID", "987654")
        monkeypatch.setenv("METRICS_PUSHGATEWAY_URL", "http://pushgateway:9091")

        settings = Settings(_env_file=None)

        assert settings.lease_seconds == 45
        assert settings.timeline_configured is True
        assert settings.metrics_push_enabled is True

    def test_lease_bounds(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, lease_seconds=0)

    def test_lock_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, lock_timeout_seconds=0)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
