"""Pydantic V2 schemas for characters, messages and rule helpers."""

from __future__ import annotations

from dnd_chat.models.character import (
    AbilityScore,
    Character,
    CharacterUpdate,
    GameModel,
    InventoryUpdate,
    Item,
    ItemSpec,
    RemoveSpec,
    StatName,
    Stats,
    new_id,
)
from dnd_chat.models.messages import (
    FunctionCall,
    GameAction,
    LLMMessage,
    MessageKind,
    Role,
    ToolCallRecord,
    UIMessage,
    now_ms,
)
from dnd_chat.models.rules import (
    CLASS_PRESETS,
    INITIAL_STATS,
    CharacterSelection,
    GeneratedDetails,
    calculate_initial_hp,
    calculate_modifier,
    create_character,
    initial_character,
    normalize_inventory,
)


__all__ = [
    # Character
    "AbilityScore",
    "StatName",
    "new_id",
    "GameModel",
    "Stats",
    "Item",
    "Character",
    "ItemSpec",
    "RemoveSpec",
    "InventoryUpdate",
    "CharacterUpdate",
    # Messages
    "now_ms",
    "GameAction",
    "FunctionCall",
    "ToolCallRecord",
    "Role",
    "LLMMessage",
    "MessageKind",
    "UIMessage",
    # Rules
    "INITIAL_STATS",
    "CLASS_PRESETS",
    "calculate_modifier",
    "calculate_initial_hp",
    "initial_character",
    "CharacterSelection",
    "GeneratedDetails",
    "normalize_inventory",
    "create_character",
]
