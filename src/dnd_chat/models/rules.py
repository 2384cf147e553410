"""D&D 5E rule helpers and level-1 character assembly.

Covers the non-UI half of character creation: class stat presets,
ability modifiers, starting hit points and turning generated inventory
into ``Item`` records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dnd_chat.models.character import Character, Item, Stats, new_id


INITIAL_STATS = Stats()

CLASS_PRESETS: dict[str, Stats] = {
    "Fighter": Stats(STR=16, DEX=12, CON=14, INT=10, WIS=10, CHA=8),
    "Wizard": Stats(STR=8, DEX=14, CON=12, INT=16, WIS=12, CHA=10),
    "Rogue": Stats(STR=10, DEX=16, CON=12, INT=12, WIS=10, CHA=14),
    "Cleric": Stats(STR=12, DEX=10, CON=14, INT=10, WIS=16, CHA=12),
}

BASE_HP = 10


def calculate_modifier(score: int) -> int:
    """Ability modifier for a score: floor((score - 10) / 2)."""
    return (score - 10) // 2


def calculate_initial_hp(con_score: int) -> int:
    """Level-1 hit points: 10 + CON modifier, never below 1."""
    return max(1, BASE_HP + calculate_modifier(con_score))


def initial_character() -> Character:
    """The placeholder character used before creation finishes."""
    return Character()


@dataclass(frozen=True)
class CharacterSelection:
    """Choices made by the player on the creation screens."""

    character_class: str
    race: str
    gender: str


@dataclass(frozen=True)
class GeneratedDetails:
    """Model-generated name, stats and backstory."""

    name: str
    stats: Stats
    backstory: str


def normalize_inventory(raw_inventory: list[dict[str, Any]]) -> list[Item]:
    """Turn generated inventory entries into items with fresh ids.

    Entries without a name or with a non-positive quantity are skipped.
    """
    items: list[Item] = []
    for entry in raw_inventory:
        name = str(entry.get("name") or "").strip()
        try:
            quantity = int(entry.get("quantity", 1))
        except (TypeError, ValueError):
            continue
        if not name or quantity <= 0:
            continue
        items.append(
            Item(
                id=new_id(),
                name=name,
                description=str(entry.get("description") or ""),
                quantity=quantity,
            )
        )
    return items


def create_character(
    selection: CharacterSelection,
    details: GeneratedDetails,
    inventory: list[dict[str, Any]],
) -> Character:
    """Assemble a complete level-1 character.

    Args:
        selection: Class, race and gender picked by the player.
        details: Generated name, stats and backstory.
        inventory: Generated starting inventory entries.

    Returns:
        A character at full hit points.
    """
    hp = calculate_initial_hp(details.stats.CON)
    return Character(
        name=details.name,
        character_class=selection.character_class,
        race=selection.race,
        gender=selection.gender,
        level=1,
        hp=hp,
        max_hp=hp,
        stats=details.stats,
        inventory=normalize_inventory(inventory),
        skills=[],
        backstory=details.backstory,
    )


__all__ = [
    "INITIAL_STATS",
    "CLASS_PRESETS",
    "BASE_HP",
    "calculate_modifier",
    "calculate_initial_hp",
    "initial_character",
    "CharacterSelection",
    "GeneratedDetails",
    "normalize_inventory",
    "create_character",
]
