"""
Unit tests for aidoc_gateway/core/config.py - Settings Class and Singleton.

Reference:
- GUIDELINES: Sinha pp. 193-195 - Pydantic BaseSettings pattern
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError
from pydantic_settings import BaseSettings

from aidoc_gateway.core.config import BreakerOverride, Settings, get_settings


# =============================================================================
# Defaults
# =============================================================================


class TestSettingsDefaults:
    """Tests for default values."""

    def test_extends_base_settings(self):
        assert issubclass(Settings, BaseSettings)

    def test_provider_chain_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.primary_model == "ollama/llama3.2"
        assert settings.fallback_models == []
        assert settings.ollama_url == "http://localhost:11434"

    def test_resilience_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.cache_enabled is True
        assert settings.cache_ttl_seconds == 300
        assert settings.cache_max_entries == 1000
        assert settings.request_timeout_seconds == 30.0
        assert settings.provider_max_retries == 0
        assert settings.circuit_breaker_enabled is True
        assert settings.breaker_overrides == {}

    def test_api_keys_are_secret(self):
        settings = Settings(_env_file=None, openai_api_key="sk-secret")

        assert "sk-secret" not in repr(settings)
        assert settings.openai_api_key.get_secret_value() == "sk-secret"


# =============================================================================
# Environment
# =============================================================================


class TestSettingsEnvironment:
    """Tests for AIDOC_-prefixed environment variables."""

    def test_reads_prefixed_variables(self):
        env = {
            "AIDOC_PRIMARY_MODEL": "anthropic/claude-3-haiku",
            "AIDOC_CACHE_TTL_SECONDS": "60",
            "AIDOC_CIRCUIT_BREAKER_ENABLED": "false",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.primary_model == "anthropic/claude-3-haiku"
        assert settings.cache_ttl_seconds == 60
        assert settings.circuit_breaker_enabled is False

    def test_fallback_models_comma_separated(self):
        env = {"AIDOC_FALLBACK_MODELS": "openai/gpt-4o-mini, anthropic/claude-3-haiku"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.fallback_models == ["openai/gpt-4o-mini", "anthropic/claude-3-haiku"]

    def test_breaker_overrides_json(self):
        env = {"AIDOC_BREAKER_OVERRIDES": '{"ai": {"failure_threshold": 5}}'}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.breaker_overrides["ai"] == BreakerOverride(failure_threshold=5)
        assert settings.breaker_overrides["ai"].as_kwargs() == {"failure_threshold": 5}


# =============================================================================
# Validation
# =============================================================================


class TestSettingsValidation:
    """Tests for field validators."""

    @pytest.mark.parametrize("model", ["llama3.2", "mistral/large", "ollama/"])
    def test_invalid_primary_model(self, model):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, primary_model=model)

    def test_invalid_fallback_model(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, fallback_models=["openai/gpt-4o", "nope"])

    def test_cache_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cache_ttl_seconds=0)

    def test_breaker_override_rejects_zero_threshold(self):
        with pytest.raises(ValidationError):
            BreakerOverride(failure_threshold=0)


# =============================================================================
# Singleton
# =============================================================================


class TestSettingsSingleton:
    """Tests for get_settings()."""

    def test_returns_cached_instance(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
