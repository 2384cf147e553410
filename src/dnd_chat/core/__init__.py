"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndChatError: Base exception for all application errors.
        InvalidNotationError, UnknownToolError, UnknownToolArgumentError:
            Tool-level errors converted into tool results.
        MalformedResponseError, ToolLoopLimitError, TransportError,
        ConfigurationError: Turn-level failures.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging, get_logger, bind_context, clear_context,
        turn_context.
"""

from __future__ import annotations

from dnd_chat.core.config import (
    GameSettings,
    LLMSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dnd_chat.core.exceptions import (
    AIControlError,
    ConfigurationError,
    DndChatError,
    GameEngineError,
    InvalidNotationError,
    MalformedResponseError,
    StorageError,
    ToolExecutionError,
    ToolLoopLimitError,
    TransportError,
    UnknownToolArgumentError,
    UnknownToolError,
)
from dnd_chat.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    turn_context,
)


__all__ = [
    # Exceptions
    "DndChatError",
    "GameEngineError",
    "InvalidNotationError",
    "ToolExecutionError",
    "UnknownToolError",
    "UnknownToolArgumentError",
    "AIControlError",
    "MalformedResponseError",
    "ToolLoopLimitError",
    "TransportError",
    "ConfigurationError",
    "StorageError",
    # Configuration
    "Settings",
    "LLMSettings",
    "GameSettings",
    "StorageSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "turn_context",
]
