"""Chat-completion transport to an OpenAI-compatible endpoint.

The orchestrator depends only on the ``ChatModel`` protocol, so tests can
script replies without a network. ``OpenAIChatModel`` is the production
implementation: it talks to any OpenAI-compatible endpoint (a LiteLLM
proxy, OpenRouter, OpenAI itself) with the ``openai`` SDK, retries
transient failures with tenacity and maps everything else onto the
package's exception hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from openai import (
    APIConnectionError,
    APIStatusError,
    InternalServerError,
    OpenAI,
    RateLimitError,
)
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dnd_chat.core.config import LLMSettings, get_settings
from dnd_chat.core.exceptions import MalformedResponseError, TransportError
from dnd_chat.core.logging import get_logger
from dnd_chat.models.messages import LLMMessage, ToolCallRecord


logger = get_logger(__name__)

_TRANSIENT_ERRORS = (RateLimitError, APIConnectionError, InternalServerError)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying model request",
        attempt=retry_state.attempt_number,
        error=type(exc).__name__ if exc else None,
    )


@dataclass(frozen=True)
class ModelReply:
    """One assistant reply.

    Attributes:
        content: Text content, if any.
        tool_calls: Tool calls requested by the model, in order.
    """

    content: str | None = None
    tool_calls: list[ToolCallRecord] = field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@runtime_checkable
class ChatModel(Protocol):
    """Anything that can answer a chat-completion request."""

    @property
    def model_name(self) -> str: ...

    def complete(
        self,
        messages: list[LLMMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> ModelReply: ...


class OpenAIChatModel:
    """``ChatModel`` backed by the openai SDK.

    Configuration is validated on the first request rather than at
    construction, so a missing key surfaces as a failed turn with a clear
    ``ConfigurationError``.

    Attributes:
        settings: Endpoint settings.
    """

    def __init__(
        self,
        settings: LLMSettings | None = None,
        *,
        client: Any = None,
    ) -> None:
        """Initialize the model.

        Args:
            settings: Endpoint settings; the global settings when omitted.
            client: Preconfigured SDK client (mainly for tests).
        """
        self.settings = settings or get_settings().llm
        self._client: Any = client

    @property
    def model_name(self) -> str:
        return self.settings.model or ""

    def _get_client(self) -> Any:
        """Get or create the OpenAI client."""
        if self._client is None:
            api_key, _, endpoint = self.settings.require()
            self._client = OpenAI(
                api_key=api_key,
                base_url=endpoint,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
            logger.info("OpenAI client created", endpoint=endpoint)
        return self._client

    def _create_completion(self, request: dict[str, Any]) -> Any:
        """Send the request, retrying transient failures."""
        client = self._get_client()
        retrying = Retrying(
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            stop=stop_after_attempt(self.settings.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            before_sleep=_log_retry,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return client.chat.completions.create(**request)
        raise TransportError("Model request was never attempted", model=self.model_name)

    def complete(
        self,
        messages: list[LLMMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> ModelReply:
        """Request one assistant reply.

        Args:
            messages: Full message list, system prompt first.
            tools: OpenAI tool schemas to offer; ``tool_choice`` is auto.
            response_format: Structured-output format, if any.

        Returns:
            The assistant's reply.

        Raises:
            ConfigurationError: If the endpoint configuration is invalid.
            TransportError: If the request fails after retries.
            MalformedResponseError: If the reply has no choices.
        """
        _, model, endpoint = self.settings.require()
        request: dict[str, Any] = {
            "model": model,
            "messages": [message.to_openai() for message in messages],
            "temperature": self.settings.temperature,
        }
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"
        if response_format is not None:
            request["response_format"] = response_format

        logger.debug(
            "Requesting completion",
            model=model,
            messages=len(messages),
            tools=len(tools or []),
            structured=response_format is not None,
        )

        try:
            response = self._create_completion(request)
        except RateLimitError as exc:
            raise TransportError(
                f"Rate limit exceeded after {self.settings.max_retries} retries",
                status_code=exc.status_code,
                model=model,
                provider=endpoint,
            ) from exc
        except APIConnectionError as exc:
            raise TransportError(
                f"Failed to connect to model endpoint: {exc}",
                model=model,
                provider=endpoint,
            ) from exc
        except APIStatusError as exc:
            raise TransportError(
                f"Model endpoint returned an error: {exc.message}",
                status_code=exc.status_code,
                model=model,
                provider=endpoint,
            ) from exc

        choices = getattr(response, "choices", None)
        if not choices:
            raise MalformedResponseError(
                "Model response contained no choices",
                model=model,
                provider=endpoint,
            )

        message = choices[0].message
        tool_calls = [
            ToolCallRecord.from_sdk(tool_call)
            for tool_call in (getattr(message, "tool_calls", None) or [])
        ]

        logger.info(
            "Completion received",
            model=model,
            tool_calls=len(tool_calls),
            content_length=len(message.content or ""),
        )
        return ModelReply(content=message.content, tool_calls=tool_calls)


__all__ = [
    "ModelReply",
    "ChatModel",
    "OpenAIChatModel",
]
