"""The game store: the single mutable record of a play session.

Holds the character, both conversation histories and the pending player
actions. The store is passed explicitly to the orchestrator and the tool
dispatcher, which are the only writers. Everything it contains is frozen,
so a snapshot only needs shallow list copies.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dnd_chat.core.logging import get_logger
from dnd_chat.models.character import Character
from dnd_chat.models.messages import GameAction, LLMMessage, UIMessage


logger = get_logger(__name__)


class GameStore(BaseModel):
    """Character state, dual message histories and pending actions.

    Attributes:
        character: The player character.
        chat_history: Display-ready UI entries.
        llm_history: Literal model-facing turns.
        current_actions: Choices offered for the next move.
        is_game_started: Whether the adventure has been kicked off.
        setting: Free-text world description chosen at creation.
    """

    model_config = ConfigDict(validate_assignment=True)

    character: Character = Field(default_factory=Character)
    chat_history: list[UIMessage] = Field(default_factory=list)
    llm_history: list[LLMMessage] = Field(default_factory=list)
    current_actions: list[GameAction] = Field(default_factory=list)
    is_game_started: bool = False
    setting: str | None = None

    # -------------------------------------------------------------------------
    # Character
    # -------------------------------------------------------------------------

    def set_character(self, character: Character) -> None:
        self.character = character

    # -------------------------------------------------------------------------
    # Histories
    # -------------------------------------------------------------------------

    def add_ui_message(self, message: UIMessage) -> None:
        self.chat_history = [*self.chat_history, message]

    def remove_ui_messages(self, message_ids: Iterable[str]) -> None:
        """Remove UI entries by id."""
        drop = set(message_ids)
        self.chat_history = [m for m in self.chat_history if m.id not in drop]

    def add_llm_message(self, message: LLMMessage) -> None:
        self.llm_history = [*self.llm_history, message]

    def extend_llm_history(self, messages: Iterable[LLMMessage]) -> None:
        self.llm_history = [*self.llm_history, *messages]

    def clear_chat(self) -> None:
        """Empty both histories."""
        self.chat_history = []
        self.llm_history = []

    # -------------------------------------------------------------------------
    # Game lifecycle
    # -------------------------------------------------------------------------

    def set_current_actions(self, actions: list[GameAction]) -> None:
        self.current_actions = list(actions)

    def start_game(self) -> None:
        self.is_game_started = True

    def set_setting(self, setting: str) -> None:
        self.setting = setting

    def reset_game(self) -> None:
        """Start over, keeping only the character's identity."""
        identity = self.character
        self.character = Character(
            name=identity.name,
            character_class=identity.character_class,
            race=identity.race,
            gender=identity.gender,
        )
        self.chat_history = []
        self.llm_history = []
        self.current_actions = []
        self.is_game_started = False
        self.setting = None
        logger.info("Game reset", character=identity.name)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Capture the current state for a later ``restore``."""
        return {
            "character": self.character,
            "chat_history": list(self.chat_history),
            "llm_history": list(self.llm_history),
            "current_actions": list(self.current_actions),
            "is_game_started": self.is_game_started,
            "setting": self.setting,
        }

    def restore(self, snapshot: dict[str, Any]) -> None:
        """Put back a state captured by ``snapshot``."""
        for name, value in snapshot.items():
            setattr(self, name, value)

    @contextmanager
    def transaction(self) -> Iterator[GameStore]:
        """Apply writes all-or-nothing.

        Any exception raised inside the block restores the state captured
        on entry and is then re-raised.

        Example:
            >>> with store.transaction():
            ...     store.set_character(new_character)
        """
        saved = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore(saved)
            logger.info("Store transaction rolled back")
            raise

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Serialize into the persisted JSON shape (camelCase keys)."""
        return {
            "character": self.character.to_public_dict(),
            "chatHistory": [m.model_dump(mode="json") for m in self.chat_history],
            "llmHistory": [m.model_dump(mode="json", exclude_none=True) for m in self.llm_history],
            "currentActions": [a.model_dump(mode="json", by_alias=True) for a in self.current_actions],
            "isGameStarted": self.is_game_started,
            "setting": self.setting,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> GameStore:
        """Rebuild a store from ``to_record`` output."""
        return cls(
            character=Character.model_validate(record.get("character") or {}),
            chat_history=[UIMessage.model_validate(m) for m in record.get("chatHistory", [])],
            llm_history=[LLMMessage.model_validate(m) for m in record.get("llmHistory", [])],
            current_actions=[GameAction.model_validate(a) for a in record.get("currentActions", [])],
            is_game_started=bool(record.get("isGameStarted", False)),
            setting=record.get("setting"),
        )


__all__ = ["GameStore"]
