"""Tests for the game-master prompts."""

from __future__ import annotations

from dnd_chat.dm.prompts import (
    DEFAULT_BACKSTORY,
    DEFAULT_SETTING,
    actions_system_prompt,
    character_context,
    initial_adventure_prompt,
    narrative_system_prompt,
)
from dnd_chat.dm.schemas import GM_ACTIONS_SCHEMA
from dnd_chat.models.character import Character


class TestSystemPrompts:
    """Tests for the phase system prompts."""

    def test_character_context(self, sample_character: Character) -> None:
        """Test the character summary."""
        context = character_context(sample_character)
        assert context.startswith("Character Context:")
        assert "Name: Mira Quickfingers" in context
        assert "HP: 14/18" in context
        assert "Healing Potion" in context

    def test_empty_inventory(self) -> None:
        """Test an empty inventory is spelled out."""
        assert "Inventory: Empty" in character_context(Character())

    def test_narrative_prompt(self, sample_character: Character) -> None:
        """Test the narrative prompt names the dice tool and the character."""
        prompt = narrative_system_prompt(sample_character)
        assert "roll_dice" in prompt
        assert "Mira Quickfingers" in prompt

    def test_actions_prompt(self, sample_character: Character) -> None:
        """Test the action window is rendered."""
        prompt = actions_system_prompt(sample_character, min_actions=3, max_actions=4)
        assert "3-4 distinct actions" in prompt
        assert "Rogue" in prompt


class TestInitialAdventurePrompt:
    """Tests for the kick-off prompt."""

    def test_contents(self, sample_character: Character) -> None:
        """Test stats, inventory, backstory and setting are included."""
        prompt = initial_adventure_prompt(sample_character, "A fog-bound harbor")
        assert "level 2 Halfling Rogue" in prompt
        assert "Dexterity: 16" in prompt
        assert "Healing Potion (x3): Heals 2d4+2" in prompt
        assert "smuggler's port" in prompt
        assert "A fog-bound harbor" in prompt

    def test_defaults(self) -> None:
        """Test defaults for a bare character."""
        prompt = initial_adventure_prompt(Character())
        assert DEFAULT_BACKSTORY in prompt
        assert DEFAULT_SETTING in prompt


class TestActionsSchema:
    """Tests for the structured-output schema."""

    def test_schema_shape(self) -> None:
        """Test the response format requires actions."""
        assert GM_ACTIONS_SCHEMA["type"] == "json_schema"
        schema = GM_ACTIONS_SCHEMA["json_schema"]["schema"]
        assert schema["required"] == ["actions"]
        assert "diceRoll" in schema["properties"]["actions"]["items"]["properties"]
