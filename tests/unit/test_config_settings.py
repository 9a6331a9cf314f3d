"""
Unit tests for configuration settings
"""

import pytest
from pydantic import ValidationError

from codereviewer.config.settings import (
    DEFAULT_MODELS,
    ProviderConfig,
    Settings,
    get_settings,
    normalize_provider,
)


class TestNormalizeProvider:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("gemini", "gemini"),
            ("OpenAI", "openai"),
            (" claude ", "claude"),
            ("anthropic", "claude"),
            ("google", "gemini"),
            ("gpt", "openai"),
            ("mistral", "mistral"),
            ("", None),
            (None, None),
        ],
    )
    def test_normalize(self, value, expected):
        assert normalize_provider(value) == expected


class TestProviderConfig:
    """Test ProviderConfig"""

    def test_defaults(self):
        config = ProviderConfig()

        assert config.provider is None
        assert config.review_depth == "deep"
        assert config.mode == "manual"
        assert config.include_context is True
        assert config.max_context_messages == 10
        assert not config.is_configured()

    def test_is_configured_requires_key(self):
        assert ProviderConfig(provider="gemini", api_key="abc").is_configured()
        assert not ProviderConfig(provider="gemini", api_key="   ").is_configured()

    def test_resolved_model_defaults_per_family(self):
        assert ProviderConfig(provider="openai").resolved_model == DEFAULT_MODELS["openai"]
        assert ProviderConfig(provider="claude", model="claude-x").resolved_model == "claude-x"

    def test_masked_api_key(self):
        assert ProviderConfig(api_key="sk-1234567890").masked_api_key == "********7890"
        assert ProviderConfig().masked_api_key == "Not Set"

    def test_api_key_not_in_repr(self):
        config = ProviderConfig(provider="openai", api_key="sk-secret-value")
        assert "sk-secret-value" not in repr(config)

    def test_frozen(self, gemini_config):
        with pytest.raises(ValidationError):
            gemini_config.model = "other"

    def test_invalid_depth_rejected(self):
        with pytest.raises(ValidationError):
            ProviderConfig(review_depth="thorough")


class TestSettings:
    """Test Settings loading from environment"""

    def test_defaults(self, clean_env):
        settings = Settings()

        assert settings.provider == "gemini"
        assert settings.api_key == ""
        assert settings.model is None
        assert settings.log_level == "INFO"
        assert settings.request_timeout == 60.0
        assert settings.history_dir_name == ".awesomediagns"
        assert not settings.is_configured()

    def test_environment_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("CODEREVIEWER_PROVIDER", "anthropic")
        monkeypatch.setenv("CODEREVIEWER_API_KEY", "key-123")
        monkeypatch.setenv("CODEREVIEWER_REVIEW_DEPTH", "quick")
        monkeypatch.setenv("CODEREVIEWER_INCLUDE_CONTEXT", "false")

        settings = Settings()

        assert settings.provider == "claude"
        assert settings.is_configured()
        assert settings.review_depth == "quick"
        assert settings.include_context is False

    def test_log_level_normalized(self, clean_env):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_timeout_must_be_positive(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(request_timeout=0)

    def test_to_provider_config(self, clean_env):
        settings = Settings(provider="openai", api_key="sk-abc", model="gpt-4o-mini")

        config = settings.to_provider_config()

        assert isinstance(config, ProviderConfig)
        assert config.provider == "openai"
        assert config.api_key == "sk-abc"
        assert config.model == "gpt-4o-mini"

    def test_repr_hides_secrets(self, clean_env):
        settings = Settings(api_key="very-secret")
        assert "very-secret" not in repr(settings)

    def test_get_settings_cached(self, clean_env):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
