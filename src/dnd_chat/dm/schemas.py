"""Structured-output schemas sent to the model.

``GM_ACTIONS_SCHEMA`` is the ``response_format`` of the action phase.
The state-update objects are optional: most turns route state changes
through tools, but a model may also report them here.
"""

from __future__ import annotations

from typing import Any


_DICE_ROLL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "notation": {"type": "string", "description": 'Dice notation (e.g. "1d20+5")'},
        "reason": {"type": "string", "description": "Reason for the roll"},
        "dc": {"type": "number", "description": "Difficulty Class (DC) for the check"},
    },
    "required": ["notation", "reason", "dc"],
}

_CHARACTER_UPDATES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "hp": {"type": "number", "description": "New current hit points"},
    },
}

_INVENTORY_UPDATES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "add": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "slug": {"type": "string"},
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                    "quantity": {"type": "number"},
                },
                "required": ["name", "quantity"],
            },
        },
        "remove": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "slug": {"type": "string"},
                    "quantityChange": {"type": "number"},
                },
                "required": ["slug", "quantityChange"],
            },
        },
    },
}

GM_ACTIONS_SCHEMA: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "gm_actions",
        "schema": {
            "type": "object",
            "properties": {
                "actions": {
                    "type": "array",
                    "description": "2-5 actions the player can take next.",
                    "items": {
                        "type": "object",
                        "properties": {
                            "description": {"type": "string"},
                            "diceRoll": _DICE_ROLL_SCHEMA,
                        },
                        "required": ["description"],
                    },
                },
                "characterUpdates": _CHARACTER_UPDATES_SCHEMA,
                "inventoryUpdates": _INVENTORY_UPDATES_SCHEMA,
            },
            "required": ["actions"],
        },
    },
}


__all__ = ["GM_ACTIONS_SCHEMA"]
