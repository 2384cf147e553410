"""Game-master system prompts for the narrative and action phases."""

from __future__ import annotations

from dnd_chat.models.character import Character


# =============================================================================
# Narrative Phase
# =============================================================================


NARRATIVE_SYSTEM_PROMPT = """You are an expert Dungeon Master for a D&D 5e game.
Your goal is to provide an immersive, text-based roleplaying experience.

Rules:
1. Follow D&D 5e rules for checks and combat where possible in a narrative format.
2. Keep descriptions vivid but concise.
3. Describe immediate surroundings and sometimes give subtle clues about the environment.
4. Manage the story, NPCs, and world state.
5. Do not break character unless explaining a rule.
6. Use creative names for NPCs and locations.
7. For player actions, use the provided roll result to narrate the outcome, e.g. "(Rolled: X)".
8. YOU are responsible for rolling dice for NPCs or environmental effects using the 'roll_dice' tool.
9. Only roll dice if the story requires it (e.g., opponent attack).
10. **CRITICAL**: Do NOT suggest, list, or describe what the player can do next. Focus ONLY on the narrative outcome of the previous action.
11. **FORMATTING**: Always format quoted speech in italics (e.g., *"Hello there"*) and use bold text for character or item names (e.g., **John Doe** or **Runestone Pendant**).

{character_context}
"""


# =============================================================================
# Action Phase
# =============================================================================


ACTIONS_SYSTEM_PROMPT = """You are an expert Dungeon Master assistant.
Your goal is to analyze the current game situation and generate valid next actions for the player.

Rules:
1. Provide {min_actions}-{max_actions} distinct actions the player can take next based on the narrative with a range of the level of risk.
2. Ensure actions are relevant to the character's details, current situation and inventory.
3. Use D&D rules to determine if an action requires a dice roll or succeeds automatically.
4. If the action requires a dice roll, specify its difficulty class (DC), the dice notation (e.g., "1d20+2"), and the reason (e.g., "Persuasion check because the guard is suspicious").
5. Output strictly in the defined JSON format. Do not include "diceRoll" in the output if dice roll is not required.
6. If the narrative changed the character's hit points or inventory and no tool recorded it, report it in "characterUpdates" or "inventoryUpdates".

{character_context}
"""


# =============================================================================
# Adventure Kick-off
# =============================================================================


INITIAL_ADVENTURE_PROMPT = """The player is {name}, a level {level} {race} {character_class}.

CHARACTER STATS:
- HP: {hp}/{max_hp}
- Strength: {STR}
- Dexterity: {DEX}
- Constitution: {CON}
- Intelligence: {INT}
- Wisdom: {WIS}
- Charisma: {CHA}

INVENTORY:
  - {inventory}

Their backstory: {backstory}

The world and current situation: {setting}

Please begin the adventure by:
1. Narrating their backstory as an introduction using third-person perspective.
2. Describing the setting and their current situation (based on the world description above)
3. Welcoming the player into the story with "You find yourself..." or similar

Make it immersive and engaging, building on the backstory and setting provided above.
**FORMATTING**: Always format quoted speech in italics (e.g., *"Hello there"*)."""

DEFAULT_BACKSTORY = "A brave adventurer ready to face the unknown."
DEFAULT_SETTING = "You find yourself in a typical fantasy realm, ready for adventure."


def character_context(character: Character) -> str:
    """Short character summary appended to both system prompts."""
    inventory = ", ".join(item.name for item in character.inventory) or "Empty"
    return (
        "Character Context:\n"
        f"Name: {character.name}\n"
        f"Class: {character.character_class}\n"
        f"Race: {character.race}\n"
        f"Level: {character.level}\n"
        f"HP: {character.hp}/{character.max_hp}\n"
        f"Inventory: {inventory}"
    )


def narrative_system_prompt(character: Character) -> str:
    """Build the system prompt for the narrative phase."""
    return NARRATIVE_SYSTEM_PROMPT.format(character_context=character_context(character))


def actions_system_prompt(
    character: Character,
    *,
    min_actions: int = 2,
    max_actions: int = 5,
) -> str:
    """Build the system prompt for the action phase."""
    return ACTIONS_SYSTEM_PROMPT.format(
        min_actions=min_actions,
        max_actions=max_actions,
        character_context=character_context(character),
    )


def initial_adventure_prompt(character: Character, setting: str | None = None) -> str:
    """Build the hidden kick-off message that opens a new adventure.

    Args:
        character: The freshly created character.
        setting: World description; a generic fantasy realm when omitted.

    Returns:
        The user-role prompt text.
    """
    if character.inventory:
        inventory = "\n  - ".join(
            f"{item.name} (x{item.quantity})"
            + (f": {item.description}" if item.description else "")
            for item in character.inventory
        )
    else:
        inventory = "Empty"

    return INITIAL_ADVENTURE_PROMPT.format(
        name=character.name,
        level=character.level,
        race=character.race,
        character_class=character.character_class,
        hp=character.hp,
        max_hp=character.max_hp,
        inventory=inventory,
        backstory=character.backstory or DEFAULT_BACKSTORY,
        setting=setting or DEFAULT_SETTING,
        **character.stats.model_dump(),
    )


__all__ = [
    "NARRATIVE_SYSTEM_PROMPT",
    "ACTIONS_SYSTEM_PROMPT",
    "INITIAL_ADVENTURE_PROMPT",
    "character_context",
    "narrative_system_prompt",
    "actions_system_prompt",
    "initial_adventure_prompt",
]
