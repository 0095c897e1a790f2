"""Tests for configuration settings."""

from cashgame.config.settings import Settings, get_settings


def test_settings_loads_from_env():
    """Test that settings loads from environment variables."""
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.openai_api_key.get_secret_value() == "sk-test"
    assert settings.analyst_configured


def test_settings_has_defaults():
    get_settings.cache_clear()
    settings = get_settings()

    assert settings.analyst_model == "gpt-4o"
    assert settings.analyst_temperature == 0.3
    assert settings.default_currency == "USD"
    assert settings.default_language == "en"
    assert settings.auth_bypass is False
    assert settings.log_level == "INFO"


def test_settings_are_cached():
    get_settings.cache_clear()

    assert get_settings() is get_settings()


def test_blank_key_is_not_configured(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")

    settings = Settings()

    assert not settings.analyst_configured


def test_explicit_values_override_env():
    settings = Settings(auth_bypass=True, default_currency="EUR")

    assert settings.auth_bypass is True
    assert settings.default_currency == "EUR"
