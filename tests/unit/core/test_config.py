"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from dnd_chat.core.config import (
    GameSettings,
    LLMSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dnd_chat.core.exceptions import ConfigurationError


class TestLLMSettings:
    """Tests for the model endpoint settings."""

    def test_defaults(self) -> None:
        """Test nothing is required at load time."""
        settings = LLMSettings()
        assert settings.api_key is None
        assert settings.model is None
        assert settings.endpoint is None
        assert settings.temperature == 0.7
        assert settings.max_retries == 3

    def test_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test loading settings from environment variables."""
        settings = LLMSettings()
        assert settings.api_key is not None
        assert settings.api_key.get_secret_value() == "test-key"
        assert settings.model == "test-model"
        assert settings.endpoint == "http://localhost:4000/v1"

    def test_require_returns_values(self, mock_env_vars: dict[str, str]) -> None:
        """Test require() returns key, model and endpoint."""
        assert LLMSettings().require() == (
            "test-key",
            "test-model",
            "http://localhost:4000/v1",
        )

    def test_require_missing_key(self) -> None:
        """Test a missing API key is a configuration error."""
        settings = LLMSettings(model="m", endpoint="http://localhost:4000")
        with pytest.raises(ConfigurationError) as exc_info:
            settings.require()
        assert exc_info.value.details["config_key"] == "DND_CHAT_LLM_API_KEY"

    def test_require_missing_model(self) -> None:
        """Test a missing model identifier is a configuration error."""
        settings = LLMSettings(api_key="k", endpoint="http://localhost:4000")
        with pytest.raises(ConfigurationError) as exc_info:
            settings.require()
        assert exc_info.value.details["config_key"] == "DND_CHAT_LLM_MODEL"

    def test_require_missing_endpoint(self) -> None:
        """Test a missing endpoint is a configuration error."""
        settings = LLMSettings(api_key="k", model="m")
        with pytest.raises(ConfigurationError) as exc_info:
            settings.require()
        assert exc_info.value.details["config_key"] == "DND_CHAT_LLM_ENDPOINT"

    def test_require_malformed_endpoint(self) -> None:
        """Test an endpoint that is not an http(s) URL is rejected."""
        settings = LLMSettings(api_key="k", model="m", endpoint="not a url")
        with pytest.raises(ConfigurationError, match="not a valid URL"):
            settings.require()

    def test_api_key_not_leaked_in_repr(self) -> None:
        """Test the secret is masked."""
        settings = LLMSettings(api_key="super-secret")
        assert "super-secret" not in repr(settings)


class TestGameSettings:
    """Tests for protocol settings."""

    def test_defaults(self) -> None:
        """Test default protocol values."""
        settings = GameSettings()
        assert settings.max_tool_rounds == 5
        assert settings.min_actions == 2
        assert settings.max_actions == 5
        assert settings.state_tools_enabled is False
        assert settings.ui_roll_messages is True

    def test_tool_round_bounds(self) -> None:
        """Test the tool round cap must be positive."""
        with pytest.raises(ValueError):
            GameSettings(max_tool_rounds=0)

    def test_inverted_action_window(self) -> None:
        """Test min_actions above max_actions is rejected."""
        with pytest.raises((ConfigurationError, ValueError)):
            GameSettings(min_actions=4, max_actions=3)

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test overriding the cap from the environment."""
        monkeypatch.setenv("DND_CHAT_GAME_MAX_TOOL_ROUNDS", "2")
        assert GameSettings().max_tool_rounds == 2


class TestStorageSettings:
    """Tests for persistence settings."""

    def test_defaults(self) -> None:
        """Test the default record name and database path."""
        settings = StorageSettings()
        assert settings.record_name == "dnd-ai-game-storage"
        assert settings.database_path == Path("data/dnd_chat.db")


class TestSettings:
    """Tests for the aggregated settings."""

    def test_defaults(self) -> None:
        """Test default app values."""
        settings = Settings()
        assert settings.app_name == "D&D AI Game Master"
        assert settings.debug is False
        assert settings.is_production is True

    def test_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test nested sections pick up their own prefixes."""
        settings = Settings()
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.llm.model == "test-model"


class TestSettingsCache:
    """Tests for the settings singleton."""

    def test_get_settings_cached(self) -> None:
        """Test that get_settings returns the cached instance."""
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that clearing the cache picks up new values."""
        first = get_settings()
        monkeypatch.setenv("DND_CHAT_LLM_MODEL", "other-model")
        clear_settings_cache()
        second = get_settings()
        assert first is not second
        assert second.llm.model == "other-model"
