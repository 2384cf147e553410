"""dnd-chat - LLM game-master chat client core.

A turn-based D&D conversation with a language model acting as game
master, reconciled into a persistent character and game state.

- Python owns TRUTH (character state, dice rolls via d20, inventory rules)
- The model handles NARRATIVE (story text, proposed actions, tool requests)
- The model never mutates state directly; every change goes through the
  pure reducers

Example:
    >>> from dnd_chat import GameStore, OpenAIChatModel, TurnOrchestrator
    >>>
    >>> store = GameStore()
    >>> gm = TurnOrchestrator(store, OpenAIChatModel())
    >>> gm.start_adventure("A fog-bound harbor town")
    >>> gm.send_message("I ask the harbormaster about the missing ship.")
    >>> print(store.chat_history[-1].content)

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for characters, messages and rules.
    engine: Dice, pure reducers and the tool dispatcher.
    dm: Model transport, prompts, normalizer and the turn orchestrator.
    storage: Game store and SQLite persistence.
    api: FastAPI endpoints.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Core
from dnd_chat.core.config import Settings, get_settings
from dnd_chat.core.exceptions import DndChatError
from dnd_chat.core.logging import configure_logging, get_logger

# Models
from dnd_chat.models import Character, GameAction, Item, LLMMessage, Stats, UIMessage

# Engine
from dnd_chat.engine import DiceRoller, ToolDispatcher, roll

# DM
from dnd_chat.dm import OpenAIChatModel, TurnOrchestrator, TurnOutcome, TurnPhase

# Storage
from dnd_chat.storage import Database, GameStore, get_database


__all__ = [
    # Version info
    "__version__",
    # Core
    "DndChatError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Character",
    "Item",
    "Stats",
    "GameAction",
    "LLMMessage",
    "UIMessage",
    # Engine
    "DiceRoller",
    "ToolDispatcher",
    "roll",
    # DM
    "OpenAIChatModel",
    "TurnOrchestrator",
    "TurnOutcome",
    "TurnPhase",
    # Storage
    "GameStore",
    "Database",
    "get_database",
]
