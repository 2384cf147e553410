"""Character, item and state-update schemas.

These models are the record of truth for the player character. They are
frozen: every change goes through the pure reducers in
``dnd_chat.engine.reducers``, which return new instances.

Python attributes are snake_case; the JSON contract shared with the model
and the persisted record uses the camelCase names (``maxHp``,
``quantityChange``) and ``class`` via field aliases.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Self
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Type Definitions
# =============================================================================


AbilityScore = Annotated[int, Field(ge=1, description="Ability score (positive)")]


class StatName(StrEnum):
    """The six ability scores."""

    STR = "STR"
    DEX = "DEX"
    CON = "CON"
    INT = "INT"
    WIS = "WIS"
    CHA = "CHA"


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid4())


class GameModel(BaseModel):
    """Base class for the immutable game records."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
    )


# =============================================================================
# Character
# =============================================================================


class Stats(GameModel):
    """Ability scores."""

    STR: AbilityScore = 10
    DEX: AbilityScore = 10
    CON: AbilityScore = 10
    INT: AbilityScore = 10
    WIS: AbilityScore = 10
    CHA: AbilityScore = 10


class Item(GameModel):
    """An inventory entry.

    Uniqueness of ``id`` is the creator's responsibility; there is no
    global registry. A quantity of zero is never stored, the reducer
    deletes the item instead.
    """

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    description: str = ""
    quantity: int = Field(default=1, ge=1)


class Character(GameModel):
    """The player character."""

    name: str = "Adventurer"
    character_class: str = Field(default="Fighter", alias="class")
    race: str = "Human"
    gender: str = "Male"
    level: int = Field(default=1, ge=1)
    hp: int = Field(default=10, ge=0)
    max_hp: int = Field(default=10, ge=1, alias="maxHp")
    stats: Stats = Field(default_factory=Stats)
    inventory: list[Item] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    backstory: str | None = None

    @model_validator(mode="after")
    def check_hp_within_max(self) -> Self:
        """Reject characters whose hp exceeds max_hp."""
        if self.hp > self.max_hp:
            raise ValueError(f"hp ({self.hp}) exceeds maxHp ({self.max_hp})")
        return self

    def find_item(self, name: str) -> Item | None:
        """Find an inventory item by case-insensitive name."""
        lowered = name.strip().lower()
        for item in self.inventory:
            if item.name.lower() == lowered:
                return item
        return None

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize using the external camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Update Directives (model -> reducers)
# =============================================================================


class ItemSpec(GameModel):
    """An item the model wants added to the inventory."""

    slug: str = ""
    name: str = Field(min_length=1)
    description: str = ""
    quantity: int = Field(default=1, ge=1)


class RemoveSpec(GameModel):
    """An item the model wants removed (fully or partially).

    ``quantity_change`` is the negative amount to remove. Positive values
    sent by the model are read as a magnitude and flipped.
    """

    slug: str = ""
    id: str | None = None
    quantity_change: int = Field(default=-1, le=-1, alias="quantityChange")

    @field_validator("quantity_change", mode="before")
    @classmethod
    def as_negative(cls, value: Any) -> int:
        """Coerce the change to a negative integer."""
        try:
            amount = int(value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"quantityChange must be an integer, got {value!r}") from exc
        return -abs(amount)

    @model_validator(mode="after")
    def require_reference(self) -> Self:
        """A removal must name its target by slug or id."""
        if not self.slug and not self.id:
            raise ValueError("remove spec needs a slug or an id")
        return self


class InventoryUpdate(GameModel):
    """Batch of inventory additions and removals."""

    add: list[ItemSpec] = Field(default_factory=list)
    remove: list[RemoveSpec] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.add and not self.remove


class CharacterUpdate(GameModel):
    """Partial character update.

    The narrative path only carries ``hp``; the tool path may also set
    ``max_hp``, ``level`` and a partial ``stats`` mapping.
    """

    hp: int | None = None
    max_hp: int | None = Field(default=None, alias="maxHp")
    level: int | None = None
    stats: dict[StatName, int] | None = None

    @property
    def is_empty(self) -> bool:
        return self.hp is None and self.max_hp is None and self.level is None and not self.stats


__all__ = [
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
]
