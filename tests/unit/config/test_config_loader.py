"""
Tests for configuration loading from the environment and .env files
"""

import os

import pytest

from prompt_shield.config import (
    ScannerProvider,
    StoreBackend,
    get_config,
    load_config,
    reload_config,
)
from prompt_shield.errors import ConfigurationError
from prompt_shield.security.config import load_security_config
from prompt_shield.security.risk import RiskLevel


class TestLoadConfig:
    """Test suite for load_config"""

    def test_defaults(self):
        config = load_config()

        assert config.environment == "test"
        assert config.scanner.provider is ScannerProvider.OPENAI_COMPATIBLE
        assert config.scanner.timeout_ms == 3000
        assert config.recorder.capacity == 20
        assert config.recorder.backend is StoreBackend.MEMORY
        assert config.security.log_threshold is RiskLevel.HIGH
        assert config.security.field_limits.custom_prompt == 1000
        assert config.providers.openai_compatible.enabled is False

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reload_picks_up_changes(self, monkeypatch):
        first = load_config()
        monkeypatch.setenv("RECORDER_CAPACITY", "5")

        assert load_config() is first
        assert reload_config().recorder.capacity == 5

    def test_groq_key_enables_openai_compatible(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_from_groq")
        monkeypatch.setenv("OPENAI_COMPATIBLE_MODEL", "llama-guard-3")

        settings = load_config().providers.openai_compatible

        assert settings.enabled is True
        assert settings.api_key == "gsk_from_groq"
        assert settings.model == "llama-guard-3"

    def test_explicit_key_wins_over_groq_key(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk_from_groq")
        monkeypatch.setenv("OPENAI_COMPATIBLE_API_KEY", "explicit")

        assert load_config().providers.openai_compatible.api_key == "explicit"

    def test_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / "custom.env"
        env_file.write_text("SCANNER_TIMEOUT_MS=750\nRECORDER_BACKEND=sqlite\n")
        monkeypatch.delenv("SCANNER_TIMEOUT_MS", raising=False)
        monkeypatch.delenv("RECORDER_BACKEND", raising=False)

        try:
            config = load_config(env_file=str(env_file), reload=True)
            assert config.scanner.timeout_ms == 750
            assert config.recorder.backend is StoreBackend.SQLITE
        finally:
            # load_dotenv writes to os.environ directly
            os.environ.pop("SCANNER_TIMEOUT_MS", None)
            os.environ.pop("RECORDER_BACKEND", None)

    @pytest.mark.parametrize(
        "name,value",
        [
            ("SCANNER_PROVIDER", "gemini"),
            ("RECORDER_BACKEND", "redis"),
            ("RECORDER_CAPACITY", "0"),
            ("SCANNER_TIMEOUT_MS", "soon"),
            ("SECURITY_LOG_THRESHOLD", "severe"),
        ],
    )
    def test_invalid_values_raise_configuration_error(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError):
            load_config(reload=True)


class TestSecurityConfig:
    """Test suite for load_security_config"""

    def test_field_limit_overrides(self, monkeypatch):
        monkeypatch.setenv("SECURITY_LIMIT_CUSTOM_PROMPT", "2000")
        monkeypatch.setenv("SECURITY_LIMIT_SELECTED_TEXT", "500")

        limits = load_security_config().field_limits

        assert limits.custom_prompt == 2000
        assert limits.selected_text == 500
        assert limits.company_name == 100

    def test_threshold_from_label(self, monkeypatch):
        monkeypatch.setenv("SECURITY_LOG_THRESHOLD", "medium")
        assert load_security_config().log_threshold is RiskLevel.MEDIUM
