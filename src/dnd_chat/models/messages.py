"""Message and action schemas for the two conversation histories.

The UI history (``UIMessage``) holds display-ready entries. The model
history (``LLMMessage``) holds the literal turns the model must see,
including assistant tool-call messages and their tool results. The two are
kept independently: a hidden kick-off prompt exists only in the model
history, dice-roll and change-log entries exist only in the UI history.
"""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from dnd_chat.models.character import GameModel, new_id


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# =============================================================================
# Actions
# =============================================================================


class GameAction(GameModel):
    """A model-proposed choice for the player's next move.

    Actions are replaced wholesale every turn.
    """

    id: str
    description: str = Field(min_length=1)
    dice_roll: str | None = Field(default=None, alias="diceRoll")
    dice_reason: str | None = Field(default=None, alias="diceReason")
    difficulty_class: int | None = Field(default=None, alias="difficultyClass")

    @property
    def requires_roll(self) -> bool:
        return self.dice_roll is not None


# =============================================================================
# Model History
# =============================================================================


class FunctionCall(BaseModel):
    """Function name and raw JSON arguments of a tool call."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str = "{}"


class ToolCallRecord(BaseModel):
    """A tool call as recorded in the model history (OpenAI wire shape)."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> str:
        return self.function.arguments

    @classmethod
    def create(cls, name: str, arguments: str = "{}", call_id: str | None = None) -> ToolCallRecord:
        """Build a record from plain values."""
        return cls(
            id=call_id or f"call_{new_id()}",
            function=FunctionCall(name=name, arguments=arguments),
        )

    @classmethod
    def from_sdk(cls, tool_call: Any) -> ToolCallRecord:
        """Convert an openai SDK tool call (or its dict form) into a record."""
        if isinstance(tool_call, dict):
            return cls.model_validate(tool_call)
        return cls(
            id=tool_call.id,
            function=FunctionCall(
                name=tool_call.function.name,
                arguments=tool_call.function.arguments or "{}",
            ),
        )


Role = Literal["user", "assistant", "system", "tool"]


class LLMMessage(BaseModel):
    """One literal turn of the model-facing history."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    role: Role
    content: str | None = None
    tool_calls: list[ToolCallRecord] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def user(cls, content: str) -> LLMMessage:
        return cls(role="user", content=content)

    @classmethod
    def system(cls, content: str) -> LLMMessage:
        return cls(role="system", content=content)

    @classmethod
    def assistant(
        cls,
        content: str | None,
        tool_calls: list[ToolCallRecord] | None = None,
    ) -> LLMMessage:
        return cls(role="assistant", content=content, tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> LLMMessage:
        return cls(role="tool", tool_call_id=tool_call_id, content=content)

    def to_openai(self) -> dict[str, Any]:
        """Serialize into the chat-completions message format."""
        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [tc.model_dump() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            payload["name"] = self.name
        return payload


# =============================================================================
# UI History
# =============================================================================


class MessageKind(StrEnum):
    """How a UI entry should be rendered."""

    INPUT = "input"
    """Player input."""

    NARRATION = "narration"
    """Game-master narrative."""

    ROLL = "roll"
    """A dice roll made by the game master."""

    LOG = "log"
    """A character or inventory change."""

    ERROR = "error"
    """A failed turn; rendered flagged with a retry affordance."""


class UIMessage(BaseModel):
    """A display-ready entry of the UI history."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str = Field(default_factory=new_id)
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: int = Field(default_factory=now_ms)
    kind: MessageKind = MessageKind.NARRATION
    tool_calls: list[ToolCallRecord] | None = None

    @property
    def is_error(self) -> bool:
        return self.kind == MessageKind.ERROR


__all__ = [
    "now_ms",
    "GameAction",
    "FunctionCall",
    "ToolCallRecord",
    "Role",
    "LLMMessage",
    "MessageKind",
    "UIMessage",
]
