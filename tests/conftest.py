"""Pytest configuration and shared fixtures.

This module provides common fixtures for the dnd_chat test suite. The
model is always a scripted fake; no test touches the network.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from dnd_chat.core.config import GameSettings, clear_settings_cache
from dnd_chat.dm.client import ModelReply
from dnd_chat.engine.dice import DiceRoller
from dnd_chat.models.character import Character, Item, Stats
from dnd_chat.models.messages import LLMMessage, ToolCallRecord
from dnd_chat.storage.store import GameStore


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Run each test from an empty directory with a fresh settings cache."""
    monkeypatch.chdir(tmp_path)
    for key in (
        "DND_CHAT_LLM_API_KEY",
        "DND_CHAT_LLM_MODEL",
        "DND_CHAT_LLM_ENDPOINT",
        "DND_CHAT_GAME_MAX_TOOL_ROUNDS",
        "DND_CHAT_GAME_STATE_TOOLS_ENABLED",
    ):
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up a complete model endpoint configuration.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_CHAT_LLM_API_KEY": "test-key",
        "DND_CHAT_LLM_MODEL": "test-model",
        "DND_CHAT_LLM_ENDPOINT": "http://localhost:4000/v1",
        "DND_CHAT_DEBUG": "true",
        "DND_CHAT_LOG_LEVEL": "DEBUG",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def game_settings() -> GameSettings:
    """Protocol settings with a small tool-round cap."""
    return GameSettings(
        max_tool_rounds=3,
        min_actions=2,
        max_actions=5,
        state_tools_enabled=False,
        ui_roll_messages=True,
    )


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def sample_character() -> Character:
    """A level-2 rogue with a small inventory."""
    return Character(
        name="Mira Quickfingers",
        character_class="Rogue",
        race="Halfling",
        gender="Female",
        level=2,
        hp=14,
        max_hp=18,
        stats=Stats(STR=10, DEX=16, CON=12, INT=12, WIS=10, CHA=14),
        inventory=[
            Item(id="item-potion", name="Healing Potion", description="Heals 2d4+2", quantity=3),
            Item(id="item-rope", name="Rope", description="50 feet of hempen rope", quantity=1),
            Item(id="item-dagger", name="Dagger", quantity=2),
        ],
        skills=["Stealth", "Sleight of Hand"],
        backstory="Raised on the docks of a smuggler's port.",
    )


@pytest.fixture
def store(sample_character: Character) -> GameStore:
    """A game store holding the sample character."""
    return GameStore(character=sample_character)


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def dice_roller() -> DiceRoller:
    """Create a DiceRoller with a fixed seed.

    Returns:
        DiceRoller instance with fixed seed.
    """
    return DiceRoller(seed=42)


# =============================================================================
# Scripted Model
# =============================================================================


class Replies:
    """Builders for scripted model replies."""

    _counter = 0

    @classmethod
    def narrative(cls, text: str = "The door creaks open onto a dark hall.") -> ModelReply:
        return ModelReply(content=text)

    @classmethod
    def call(cls, name: str, arguments: dict[str, Any] | str | None = None) -> ToolCallRecord:
        cls._counter += 1
        raw = arguments if isinstance(arguments, str) else json.dumps(arguments or {})
        return ToolCallRecord.create(name, raw, call_id=f"call_{cls._counter}")

    @classmethod
    def tools(cls, *calls: ToolCallRecord, content: str | None = None) -> ModelReply:
        return ModelReply(content=content, tool_calls=list(calls))

    @classmethod
    def roll(cls, notation: str = "1d20+2", reason: str = "Goblin attack") -> ModelReply:
        return cls.tools(cls.call("roll_dice", {"notation": notation, "reason": reason}))

    @classmethod
    def actions(
        cls,
        actions: list[dict[str, Any]] | None = None,
        **extra: Any,
    ) -> ModelReply:
        payload = {
            "actions": actions
            if actions is not None
            else [
                {"description": "Sneak along the wall"},
                {
                    "description": "Pick the lock",
                    "diceRoll": {"notation": "1d20+5", "reason": "Thieves' tools", "dc": 15},
                },
            ],
            **extra,
        }
        return ModelReply(content=json.dumps(payload))


class ScriptedChatModel:
    """ChatModel fake that replays scripted replies and records requests."""

    model_name = "scripted-model"

    def __init__(self, replies: list[ModelReply | BaseException]) -> None:
        self._replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def complete(
        self,
        messages: list[LLMMessage],
        *,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> ModelReply:
        self.calls.append(
            {
                "messages": list(messages),
                "tools": tools,
                "response_format": response_format,
            }
        )
        if not self._replies:
            raise AssertionError("ScriptedChatModel ran out of replies")
        reply = self._replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def remaining(self) -> int:
        return len(self._replies)


@pytest.fixture
def replies() -> type[Replies]:
    """Reply builders for scripting the model."""
    return Replies


@pytest.fixture
def scripted_model() -> type[ScriptedChatModel]:
    """Factory for scripted chat models."""
    return ScriptedChatModel
