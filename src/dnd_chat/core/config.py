"""Configuration management for the game-master chat client.

This module provides centralized configuration management using pydantic-settings,
supporting environment variables, .env files, and runtime configuration overrides.
The model API key is held as a SecretStr.

Example:
    >>> from dnd_chat.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.max_tool_rounds
    5

Environment Variables:
    DND_CHAT_LLM_API_KEY: API key for the OpenAI-compatible endpoint
    DND_CHAT_LLM_MODEL: Model identifier sent with every request
    DND_CHAT_LLM_ENDPOINT: Base URL of the OpenAI-compatible endpoint
    DND_CHAT_GAME_MAX_TOOL_ROUNDS: Cap on tool-call rounds per turn
    DND_CHAT_DATABASE_PATH: Path to the SQLite save file
    DND_CHAT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, Field, SecretStr, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_chat.core.exceptions import ConfigurationError


_URL_ADAPTER: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)


class LLMSettings(BaseSettings):
    """Configuration for the model endpoint.

    Nothing here is required at load time; ``require()`` validates the
    three mandatory values when a request is about to be made.

    Attributes:
        api_key: API key for the OpenAI-compatible endpoint.
        model: Model identifier.
        endpoint: Base URL of the endpoint (e.g. a LiteLLM proxy).
        temperature: Sampling temperature for both protocol phases.
        max_retries: Maximum transport retry attempts.
        timeout_seconds: Request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_CHAT_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = Field(
        default=None,
        description="API key for the model endpoint",
    )
    model: str | None = Field(
        default=None,
        description="Model identifier",
    )
    endpoint: str | None = Field(
        default=None,
        description="Base URL of the OpenAI-compatible endpoint",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum API retry attempts",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="API request timeout",
    )

    def require(self) -> tuple[str, str, str]:
        """Validate and return the mandatory endpoint configuration.

        Returns:
            Tuple of (api_key, model, endpoint).

        Raises:
            ConfigurationError: If a value is missing or the endpoint is
                not a well-formed http(s) URL.
        """
        if self.api_key is None or not self.api_key.get_secret_value():
            raise ConfigurationError(
                "LLM API key is not configured",
                config_key="DND_CHAT_LLM_API_KEY",
            )
        if not self.model:
            raise ConfigurationError(
                "LLM model is not configured",
                config_key="DND_CHAT_LLM_MODEL",
            )
        if not self.endpoint:
            raise ConfigurationError(
                "LLM endpoint is not configured",
                config_key="DND_CHAT_LLM_ENDPOINT",
            )
        try:
            _URL_ADAPTER.validate_python(self.endpoint)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                "LLM endpoint is not a valid URL",
                config_key="DND_CHAT_LLM_ENDPOINT",
                details={"endpoint": self.endpoint},
            ) from exc
        return self.api_key.get_secret_value(), self.model, self.endpoint


class GameSettings(BaseSettings):
    """Configuration for the conversation protocol.

    Attributes:
        max_tool_rounds: Maximum tool-call rounds in the narrative phase.
        min_actions: Fewest actions the model is expected to propose.
        max_actions: Most actions the model is expected to propose.
        state_tools_enabled: Expose inventory/character tools during narration.
        ui_roll_messages: Show GM dice rolls as system messages in the UI history.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_CHAT_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_tool_rounds: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Cap on tool-call rounds per turn",
    )
    min_actions: int = Field(
        default=2,
        ge=1,
        description="Minimum expected actions per turn",
    )
    max_actions: int = Field(
        default=5,
        ge=1,
        description="Maximum expected actions per turn",
    )
    state_tools_enabled: bool = Field(
        default=False,
        description="Offer state-mutating tools in the narrative phase",
    )
    ui_roll_messages: bool = Field(
        default=True,
        description="Mirror GM dice rolls into the UI history",
    )

    @model_validator(mode="after")
    def validate_action_bounds(self) -> "GameSettings":
        """Ensure the action count window is not inverted.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If min_actions > max_actions.
        """
        if self.min_actions > self.max_actions:
            raise ConfigurationError(
                f"min_actions ({self.min_actions}) must not exceed "
                f"max_actions ({self.max_actions})",
                config_key="min_actions",
            )
        return self


class StorageSettings(BaseSettings):
    """Configuration for the persisted game record.

    Attributes:
        database_path: Path to the SQLite database file.
        record_name: Name of the single record the game store is saved under.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_CHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/dnd_chat.db"),
        description="Path to SQLite database",
    )
    record_name: str = Field(
        default="dnd-ai-game-storage",
        min_length=1,
        description="Name of the persisted game record",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        llm: Model endpoint settings.
        game: Conversation protocol settings.
        storage: Persistence settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_CHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="D&D AI Game Master",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    llm: LLMSettings = Field(default_factory=LLMSettings)
    game: GameSettings = Field(default_factory=GameSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration cannot be loaded.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "LLMSettings",
    "GameSettings",
    "StorageSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
