"""Unit tests for settings and observability setup."""

import logging
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from vodchat.core.config import Settings, get_settings
from vodchat.infrastructure.observability import configure_logfire, configure_logging


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, settings):
        """Test the documented replay constants."""
        assert settings.sample_interval_seconds == 0.1
        assert settings.large_jump_threshold_seconds == 15
        assert settings.context_message_count == 25
        assert settings.stagger_window_seconds == 1.0
        assert settings.fallback_offset_seconds == 900
        assert settings.offset_sanity_bound_seconds == 3600
        assert settings.is_production
        assert not settings.is_development

    def test_environment_overrides(self, monkeypatch):
        """Test VODCHAT_ prefixed variables override defaults."""
        monkeypatch.setenv("VODCHAT_ENVIRONMENT", "development")
        monkeypatch.setenv("VODCHAT_LARGE_JUMP_THRESHOLD_SECONDS", "30")

        settings = Settings(_env_file=None)

        assert settings.is_development
        assert settings.large_jump_threshold_seconds == 30

    @pytest.mark.parametrize(
        "field,value",
        [
            ("sample_interval_seconds", 0),
            ("stagger_window_seconds", -1.0),
            ("large_jump_threshold_seconds", 0),
            ("context_message_count", -1),
            ("http_max_retries", 0),
            ("environment", "staging"),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_zero_context_allowed(self):
        assert Settings(_env_file=None, context_message_count=0).context_message_count == 0

    def test_get_settings_cached(self):
        """Test the cached accessor returns one instance."""
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestObservability:
    """Test logging and Logfire configuration."""

    def test_configure_logging_sets_level(self):
        configure_logging(Settings(_env_file=None, log_level="DEBUG"))
        assert logging.getLogger("vodchat").level == logging.DEBUG

    def test_logfire_disabled_is_noop(self, settings):
        """Test Logfire is not configured when disabled."""
        with patch("vodchat.infrastructure.observability.logfire_setup.logfire") as mock_logfire:
            configure_logfire(settings)
        mock_logfire.configure.assert_not_called()

    def test_logfire_enabled(self):
        """Test settings are passed through to Logfire."""
        settings = Settings(_env_file=None, logfire_enabled=True, logfire_api_key="token")
        with patch("vodchat.infrastructure.observability.logfire_setup.logfire") as mock_logfire:
            configure_logfire(settings, {"console": None})

        kwargs = mock_logfire.configure.call_args.kwargs
        assert kwargs["service_name"] == "vodchat"
        assert kwargs["token"] == "token"
        assert kwargs["console"] is None

    def test_logfire_failure_tolerated_in_development(self):
        """Test a Logfire failure only raises outside development."""
        with patch("vodchat.infrastructure.observability.logfire_setup.logfire") as mock_logfire:
            mock_logfire.configure.side_effect = RuntimeError("no network")

            configure_logfire(
                Settings(_env_file=None, logfire_enabled=True, environment="development")
            )
            with pytest.raises(RuntimeError):
                configure_logfire(Settings(_env_file=None, logfire_enabled=True))
