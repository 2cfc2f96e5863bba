"""Tests for configuration settings (core/config.py)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from offboard_api.core.config import Settings
from offboard_api.core.errors import ConfigurationError


def test_default_values():
    """Settings model has the documented defaults."""
    fields = Settings.model_fields

    assert fields["database_url"].default is None
    assert fields["session_table_name"].default == "user_sessions"
    assert fields["session_schema_name"].default == "public"
    assert fields["session_prune_interval"].default == 900
    assert fields["session_cookie_name"].default == "sessionId"
    assert fields["database_pool_max_size"].default == 20
    assert fields["database_idle_timeout"].default == 30.0
    assert fields["database_connect_timeout"].default == 10.0
    assert fields["log_level"].default == "INFO"


def test_require_database_url_returns_value():
    settings = Settings(database_url="postgresql://localhost/test")

    assert settings.require_database_url() == "postgresql://localhost/test"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_require_database_url_missing_raises(value):
    settings = Settings(database_url=value)

    with pytest.raises(ConfigurationError, match="DATABASE_URL is required"):
        settings.require_database_url()


def test_negative_prune_interval_rejected():
    with pytest.raises(ValidationError) as exc_info:
        Settings(session_prune_interval=-1)

    assert "SESSION_PRUNE_INTERVAL" in str(exc_info.value)


def test_frontend_urls_split():
    settings = Settings(frontend_url="http://a.test, https://b.test")

    assert settings.frontend_urls == ["http://a.test", "https://b.test"]


def test_settings_from_env(monkeypatch):
    """Settings can be loaded from environment variables."""
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/test_env")
    monkeypatch.setenv("SESSION_TABLE_NAME", "portal_sessions")
    monkeypatch.setenv("SESSION_PRUNE_INTERVAL", "60")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings()

    assert settings.database_url == "postgresql://localhost/test_env"
    assert settings.session_table_name == "portal_sessions"
    assert settings.session_prune_interval == 60
    assert settings.log_level == "DEBUG"
