"""Game engine: dice, pure state reducers and the tool dispatcher.

Submodules:
    dice: Dice notation parsing and rolling (d20 library)
    reducers: Pure inventory and character update functions
    tools: Tool definitions and the dispatcher that executes them

Example:
    >>> from dnd_chat.engine import DiceRoller, apply_inventory_update
    >>> DiceRoller(seed=3).roll("1d20+5").modifier
    5
"""

from __future__ import annotations

# =============================================================================
# Dice Rolling
# =============================================================================
from dnd_chat.engine.dice import (
    DiceNotation,
    DiceRoller,
    RollResult,
    parse_notation,
    roll,
)

# =============================================================================
# Reducers
# =============================================================================
from dnd_chat.engine.reducers import (
    CharacterUpdateResult,
    InventoryUpdateResult,
    apply_character_update,
    apply_inventory_update,
    slugify,
)

# =============================================================================
# Tools
# =============================================================================
from dnd_chat.engine.tools import (
    GAME_MASTER_TOOLS,
    NARRATIVE_TOOLS,
    TOOL_SCHEMAS,
    ToolCall,
    ToolDefinition,
    ToolDispatcher,
    ToolName,
    ToolResult,
    get_tools_as_openai_schema,
)


__all__ = [
    # Dice
    "DiceNotation",
    "DiceRoller",
    "RollResult",
    "parse_notation",
    "roll",
    # Reducers
    "slugify",
    "InventoryUpdateResult",
    "CharacterUpdateResult",
    "apply_inventory_update",
    "apply_character_update",
    # Tools
    "ToolName",
    "ToolDefinition",
    "TOOL_SCHEMAS",
    "NARRATIVE_TOOLS",
    "GAME_MASTER_TOOLS",
    "get_tools_as_openai_schema",
    "ToolCall",
    "ToolResult",
    "ToolDispatcher",
]
