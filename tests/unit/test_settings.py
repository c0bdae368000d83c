"""Unit tests for Settings, ClientConfig and timeout scaling."""

import pytest
from pydantic import SecretStr, ValidationError

from anthropic_tools.client.config import ClientConfig, calculate_timeout
from anthropic_tools.settings import DEFAULT_API_VERSION, Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.api_key.get_secret_value() == ""
        assert settings.api_version == DEFAULT_API_VERSION
        assert settings.max_tokens == 4096
        assert settings.max_retries == 2
        assert settings.max_tool_rounds == 10
        assert 429 in settings.retry_statuses

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
        monkeypatch.setenv("ANTHROPIC_MODEL", "claude-env")
        monkeypatch.setenv("MAX_RETRIES", "5")

        settings = Settings()

        assert settings.api_key.get_secret_value() == "sk-env"
        assert settings.model == "claude-env"
        assert settings.max_retries == 5

    def test_api_key_is_secret(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-hidden")
        assert "sk-hidden" not in repr(Settings())

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestClientConfig:
    def test_from_settings_with_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")

        config = ClientConfig.from_settings(max_tokens=2048)

        assert config.api_key.get_secret_value() == "sk-env"
        assert config.max_tokens == 2048
        assert isinstance(config.retry_statuses, frozenset)

    def test_from_explicit_settings(self):
        settings = Settings(api_key=SecretStr("sk-explicit"), max_tool_rounds=3)
        config = ClientConfig.from_settings(settings)
        assert config.api_key.get_secret_value() == "sk-explicit"
        assert config.max_tool_rounds == 3

    def test_validation(self):
        with pytest.raises(ValidationError):
            ClientConfig(temperature=1.5)

    def test_request_timeout_dynamic(self):
        config = ClientConfig(dynamic_timeout=True)
        assert config.request_timeout(1024) == 600.0
        assert config.request_timeout(64_000) == 1800.0

    def test_request_timeout_static(self):
        config = ClientConfig(dynamic_timeout=False, timeout=30.0)
        assert config.request_timeout(64_000) == 30.0


class TestCalculateTimeout:
    @pytest.mark.parametrize(
        ("max_tokens", "expected"),
        [
            (None, 600.0),
            (1, 600.0),
            (21_333, 600.0),
            (32_000, 900.0),
            (128_000, 3600.0),
            (256_000, 7200.0),
        ],
    )
    def test_floor_and_scaling(self, max_tokens, expected):
        assert calculate_timeout(max_tokens) == pytest.approx(expected)
