"""
Unit tests for Configuration module.

Covers defaults, validators and computed properties of the settings.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.core.config import (
    ConfigValidator,
    EnvironmentEnum,
    LogFormatEnum,
    Settings,
    get_config_summary,
)


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestSettings:
    """Test cases for Settings configuration."""

    def test_pipeline_defaults(self):
        test_settings = make_settings()

        assert test_settings.gemini_model == "gemini-2.5-flash"
        assert test_settings.transcript_window == 16
        assert test_settings.transcript_content_cap == 400
        assert test_settings.summary_every_n_messages == 6
        assert test_settings.summary_idle_seconds_fast == 8
        assert test_settings.summary_idle_seconds_backfill == 60
        assert test_settings.summary_min_length == 200
        assert test_settings.summary_max_length == 350
        assert test_settings.title_max_length_meta == 20
        assert test_settings.title_max_length_session == 24
        assert test_settings.backfill_default_limit == 50
        assert test_settings.backfill_max_limit == 500
        assert test_settings.risk_caution_sticky is True

    def test_environment_validation(self):
        assert make_settings(environment="PRODUCTION").environment == EnvironmentEnum.production
        assert make_settings(environment="dev").environment == EnvironmentEnum.development
        assert make_settings(environment="prod").environment == EnvironmentEnum.production

        with pytest.raises(ValidationError):
            make_settings(environment="invalid_env")

    def test_summary_bounds(self):
        with pytest.raises(ValidationError):
            make_settings(summary_min_length=400, summary_max_length=350)

    def test_backfill_bounds(self):
        with pytest.raises(ValidationError):
            make_settings(backfill_default_limit=600, backfill_max_limit=500)

    def test_allowed_origins_list(self):
        test_settings = make_settings(allowed_origins="https://a.example, https://b.example,")
        assert test_settings.allowed_origins_list == ["https://a.example", "https://b.example"]

    def test_computed_properties(self):
        test_settings = make_settings(environment="testing", gemini_api_key="key")
        assert test_settings.is_testing is True
        assert test_settings.is_production is False
        assert test_settings.has_ai_enabled is True
        assert make_settings(log_format="simple").log_format == LogFormatEnum.simple


class TestConfigValidator:
    def test_missing_required(self):
        with patch("app.core.config.settings", make_settings(database_url=None)):
            with pytest.raises(ValueError) as exc_info:
                ConfigValidator.validate_required_settings()
        assert "DATABASE_URL is required" in str(exc_info.value)

    def test_feature_status(self):
        with patch("app.core.config.settings", make_settings(backfill_admin_token="t")):
            status = ConfigValidator.get_feature_status()
            summary = get_config_summary()
        assert status["backfill_endpoint_enabled"] is True
        assert summary["features"] == status
