"""Pure state reducers for inventory and character updates.

Both reducers take the current record plus an update directive and return
a new record together with human-readable change logs. Inputs are never
mutated; out-of-range values are clamped rather than rejected, and a
removal that matches nothing is a no-op.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from dnd_chat.core.logging import get_logger
from dnd_chat.models.character import (
    Character,
    CharacterUpdate,
    InventoryUpdate,
    Item,
    RemoveSpec,
    new_id,
)


logger = get_logger(__name__)


def slugify(name: str) -> str:
    """Normalize an item name into a slug: lowercase, whitespace runs to '-'."""
    return re.sub(r"\s+", "-", name.strip().lower())


# =============================================================================
# Inventory
# =============================================================================


@dataclass(frozen=True)
class InventoryUpdateResult:
    """Outcome of applying an inventory update.

    Attributes:
        new_inventory: The resulting inventory.
        logs: One entry per applied change, in application order.
        unmatched: Removal directives that matched no item.
    """

    new_inventory: list[Item]
    logs: list[str] = field(default_factory=list)
    unmatched: list[RemoveSpec] = field(default_factory=list)


def _find_item_index(inventory: list[Item], spec: RemoveSpec) -> int | None:
    """Resolve a removal target: explicit id, then slug, then exact name."""
    if spec.id:
        for index, item in enumerate(inventory):
            if item.id == spec.id:
                return index
    if spec.slug:
        for index, item in enumerate(inventory):
            if slugify(item.name) == spec.slug or item.name == spec.slug:
                return index
    return None


def apply_inventory_update(
    inventory: list[Item],
    update: InventoryUpdate,
) -> InventoryUpdateResult:
    """Compute a new inventory from add and remove directives.

    All additions are applied before any removal, each group in list order.

    Args:
        inventory: Current inventory (left untouched).
        update: The directives to apply.

    Returns:
        InventoryUpdateResult with the new inventory and change logs.
    """
    items = list(inventory)
    logs: list[str] = []
    unmatched: list[RemoveSpec] = []

    for spec in update.add:
        items.append(
            Item(
                id=new_id(),
                name=spec.name,
                description=spec.description,
                quantity=spec.quantity,
            )
        )
        logs.append(f"Added {spec.quantity}x {spec.name}")

    for spec in update.remove:
        index = _find_item_index(items, spec)
        if index is None:
            logger.debug("Inventory removal matched nothing", slug=spec.slug, item_id=spec.id)
            unmatched.append(spec)
            continue

        item = items[index]
        remaining = item.quantity + spec.quantity_change
        if remaining <= 0:
            del items[index]
            logs.append(f"Removed {item.name}")
        else:
            items[index] = item.model_copy(update={"quantity": remaining})
            logs.append(f"Removed {abs(spec.quantity_change)}x {item.name}")

    return InventoryUpdateResult(new_inventory=items, logs=logs, unmatched=unmatched)


# =============================================================================
# Character
# =============================================================================


@dataclass(frozen=True)
class CharacterUpdateResult:
    """Outcome of applying a character update.

    Attributes:
        new_character: The resulting character.
        logs: One entry per changed field.
    """

    new_character: Character
    logs: list[str] = field(default_factory=list)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def apply_character_update(
    character: Character,
    update: CharacterUpdate,
) -> CharacterUpdateResult:
    """Compute a new character from a partial update.

    Fields are applied in order ``max_hp``, ``hp``, ``level``, ``stats``.
    ``hp`` is always kept within ``[0, max_hp]``, including when a lowered
    ``max_hp`` leaves the current value out of range.

    Args:
        character: Current character (left untouched).
        update: Partial update; absent fields are left alone.

    Returns:
        CharacterUpdateResult with the new character and change logs.
    """
    changes: dict[str, object] = {}
    logs: list[str] = []

    max_hp = character.max_hp
    if update.max_hp is not None:
        max_hp = max(1, update.max_hp)
        changes["max_hp"] = max_hp
        logs.append(f"Max HP -> {max_hp}")

    if update.hp is not None:
        hp = _clamp(update.hp, 0, max_hp)
        changes["hp"] = hp
        logs.append(f"HP -> {hp}")
    elif character.hp > max_hp:
        changes["hp"] = max_hp
        logs.append(f"HP -> {max_hp}")

    if update.level is not None:
        level = max(1, update.level)
        changes["level"] = level
        logs.append(f"Level -> {level}")

    if update.stats:
        merged = character.stats.model_dump()
        for stat, value in update.stats.items():
            key = str(stat)
            merged[key] = max(1, value)
            logs.append(f"{key} -> {merged[key]}")
        changes["stats"] = character.stats.model_validate(merged)

    if not changes:
        return CharacterUpdateResult(new_character=character, logs=[])

    new_character = character.model_validate(
        {**character.model_dump(), **changes}
    )
    return CharacterUpdateResult(new_character=new_character, logs=logs)


__all__ = [
    "slugify",
    "InventoryUpdateResult",
    "apply_inventory_update",
    "CharacterUpdateResult",
    "apply_character_update",
]
