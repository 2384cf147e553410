"""Custom exception hierarchy for the D&D game-master chat client.

Every error raised by the package inherits from DndChatError so the turn
orchestrator can catch one type at the turn boundary while each domain
keeps its own context (dice expression, tool name, model, config key).

Tool-level errors (InvalidNotationError, UnknownToolError,
UnknownToolArgumentError) are converted into error-shaped tool results by
the dispatcher and fed back to the model. Configuration, transport and
malformed-response errors abort the turn.

Example:
    >>> from dnd_chat.core.exceptions import InvalidNotationError
    >>> raise InvalidNotationError("Bad dice", expression="dd20")
"""

from __future__ import annotations

from typing import Any


class DndChatError(Exception):
    """Base exception for all dnd_chat errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(DndChatError):
    """Base exception for dice, reducer and tool errors."""


class InvalidNotationError(GameEngineError):
    """Raised when a dice notation does not match ``<count>d<sides>[+|-<mod>]``."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize notation error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that failed to parse.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class ToolExecutionError(GameEngineError):
    """Base exception for failures while dispatching a model tool call."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize tool error with tool context.

        Args:
            message: Human-readable error description.
            tool_name: Name of the tool the model asked for.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if tool_name:
            combined_details["tool_name"] = tool_name
        super().__init__(message, details=combined_details)


class UnknownToolError(ToolExecutionError):
    """Raised when the model calls a tool outside the known tool set."""


class UnknownToolArgumentError(ToolExecutionError):
    """Raised when tool arguments are not valid JSON or miss required fields."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        argument: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize argument error with the offending argument name.

        Args:
            message: Human-readable error description.
            tool_name: Name of the tool being called.
            argument: The argument that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if argument:
            combined_details["argument"] = argument
        super().__init__(message, tool_name=tool_name, details=combined_details)


# =============================================================================
# AI Control Domain Exceptions
# =============================================================================


class AIControlError(DndChatError):
    """Base exception for all model interaction errors.

    Raised when there are issues talking to the model provider or making
    sense of what it returned.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AI control error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the model involved.
            provider: Endpoint or provider name.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class MalformedResponseError(AIControlError):
    """Raised when model output is not parseable JSON or breaks the schema."""


class ToolLoopLimitError(MalformedResponseError):
    """Raised when the model keeps requesting tools past the iteration cap."""

    def __init__(
        self,
        message: str,
        *,
        max_rounds: int | None = None,
        model: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize loop-limit error with the configured cap.

        Args:
            message: Human-readable error description.
            max_rounds: The tool round cap that was exceeded.
            model: Name of the model involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if max_rounds is not None:
            combined_details["max_rounds"] = max_rounds
        super().__init__(message, model=model, details=combined_details)


class TransportError(AIControlError):
    """Raised when the request to the model provider fails.

    This covers connection errors, timeouts, exhausted rate-limit retries
    and non-success HTTP statuses.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize transport error with HTTP context.

        Args:
            message: Human-readable error description.
            status_code: HTTP status returned by the provider, if any.
            model: Name of the model involved.
            provider: Endpoint or provider name.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if status_code is not None:
            combined_details["status_code"] = status_code
        super().__init__(message, model=model, provider=provider, details=combined_details)


# =============================================================================
# Configuration & Storage Exceptions
# =============================================================================


class ConfigurationError(DndChatError):
    """Raised when application configuration is missing or invalid.

    Missing API key, model identifier or endpoint URL are fatal for a turn;
    there is no fallback provider.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class StorageError(DndChatError):
    """Raised when a persisted game record cannot be read or written."""

    def __init__(
        self,
        message: str,
        *,
        record_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize storage error with record context.

        Args:
            message: Human-readable error description.
            record_name: Name of the persisted record involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if record_name:
            combined_details["record_name"] = record_name
        super().__init__(message, details=combined_details)


__all__ = [
    # Base exception
    "DndChatError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidNotationError",
    "ToolExecutionError",
    "UnknownToolError",
    "UnknownToolArgumentError",
    # AI control exceptions
    "AIControlError",
    "MalformedResponseError",
    "ToolLoopLimitError",
    "TransportError",
    # Configuration & storage exceptions
    "ConfigurationError",
    "StorageError",
]
