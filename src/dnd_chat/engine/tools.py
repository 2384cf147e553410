"""Game-master tools exposed to the model through function calling.

The tool set is closed: ``ToolName`` enumerates every tool, and
``ToolDispatcher`` refuses to construct unless it has a handler for each
member. Handlers run against the game store passed to the dispatcher;
the reducers they call are pure, the dispatcher is the impure shell that
writes the result back.

Tools:
    roll_dice: Roll dice for a GM-controlled check
    add_inventory: Add items to the character's inventory
    update_inventory: Add or remove items
    update_character: Change hp, max hp, level or ability scores
    get_character_stats: Read-only view of the character
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from dnd_chat.core.exceptions import (
    GameEngineError,
    InvalidNotationError,
    ToolExecutionError,
    UnknownToolArgumentError,
    UnknownToolError,
)
from dnd_chat.core.logging import get_logger
from dnd_chat.engine.dice import DiceRoller
from dnd_chat.engine.reducers import (
    apply_character_update,
    apply_inventory_update,
    slugify,
)
from dnd_chat.models.character import (
    CharacterUpdate,
    InventoryUpdate,
    ItemSpec,
    RemoveSpec,
)
from dnd_chat.models.messages import ToolCallRecord
from dnd_chat.storage.store import GameStore


logger = get_logger(__name__)


# =============================================================================
# Tool Registry
# =============================================================================


class ToolName(StrEnum):
    """Every tool the model may call."""

    ROLL_DICE = "roll_dice"
    ADD_INVENTORY = "add_inventory"
    UPDATE_INVENTORY = "update_inventory"
    UPDATE_CHARACTER = "update_character"
    GET_CHARACTER_STATS = "get_character_stats"


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool for model binding.

    Attributes:
        name: Tool function name.
        description: Human-readable description for the model.
        parameters: JSON schema for parameters.
    """

    name: ToolName
    description: str
    parameters: dict[str, Any]

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": str(self.name),
                "description": self.description,
                "parameters": self.parameters,
            },
        }


_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "Item name"},
        "description": {"type": "string", "description": "Short item description"},
        "quantity": {"type": "integer", "minimum": 1, "description": "How many"},
        "id": {"type": "string", "description": "Existing item id (removals)"},
        "slug": {"type": "string", "description": "Lowercase hyphenated name (removals)"},
    },
    "required": ["name"],
}

TOOL_SCHEMAS: dict[ToolName, ToolDefinition] = {
    ToolName.ROLL_DICE: ToolDefinition(
        name=ToolName.ROLL_DICE,
        description=(
            "Roll dice for a check the game master controls (enemy attacks, "
            "hidden perception, random events). Never roll for the player's own actions."
        ),
        parameters={
            "type": "object",
            "properties": {
                "notation": {
                    "type": "string",
                    "description": "Dice notation such as 1d20+5 or 2d6",
                },
                "reason": {"type": "string", "description": "Why the roll is made"},
            },
            "required": ["notation", "reason"],
        },
    ),
    ToolName.ADD_INVENTORY: ToolDefinition(
        name=ToolName.ADD_INVENTORY,
        description="Add items the character picks up, buys or is given.",
        parameters={
            "type": "object",
            "properties": {"items": {"type": "array", "items": _ITEM_SCHEMA}},
            "required": ["items"],
        },
    ),
    ToolName.UPDATE_INVENTORY: ToolDefinition(
        name=ToolName.UPDATE_INVENTORY,
        description="Add items to or remove items from the character's inventory.",
        parameters={
            "type": "object",
            "properties": {
                "action": {"type": "string", "enum": ["add", "remove"]},
                "items": {"type": "array", "items": _ITEM_SCHEMA},
            },
            "required": ["action", "items"],
        },
    ),
    ToolName.UPDATE_CHARACTER: ToolDefinition(
        name=ToolName.UPDATE_CHARACTER,
        description="Change the character's hit points, maximum hit points, level or ability scores.",
        parameters={
            "type": "object",
            "properties": {
                "hp": {"type": "integer", "description": "New current hit points"},
                "maxHp": {"type": "integer", "description": "New maximum hit points"},
                "level": {"type": "integer", "description": "New level"},
                "stats": {
                    "type": "object",
                    "description": "Ability scores to overwrite, e.g. {\"STR\": 14}",
                    "additionalProperties": {"type": "integer"},
                },
            },
        },
    ),
    ToolName.GET_CHARACTER_STATS: ToolDefinition(
        name=ToolName.GET_CHARACTER_STATS,
        description="Look up the character's current hit points, level, ability scores and inventory.",
        parameters={"type": "object", "properties": {}},
    ),
}

NARRATIVE_TOOLS: tuple[ToolName, ...] = (ToolName.ROLL_DICE,)
GAME_MASTER_TOOLS: tuple[ToolName, ...] = tuple(ToolName)


def get_tools_as_openai_schema(
    names: Iterable[ToolName | str] = GAME_MASTER_TOOLS,
) -> list[dict[str, Any]]:
    """Get tools in OpenAI function calling schema format."""
    return [TOOL_SCHEMAS[ToolName(name)].to_openai() for name in names]


# =============================================================================
# Tool Execution
# =============================================================================


@dataclass(frozen=True)
class ToolCall:
    """A request to execute a tool.

    Attributes:
        call_id: Provider-assigned id the result must be keyed to.
        name: Name of the tool to call.
        arguments: Parsed arguments.
    """

    call_id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: ToolCallRecord) -> ToolCall:
        """Parse the JSON argument string of a recorded tool call.

        Raises:
            UnknownToolArgumentError: If the arguments are not a JSON object.
        """
        raw = record.arguments or "{}"
        try:
            arguments = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise UnknownToolArgumentError(
                f"Tool arguments are not valid JSON: {exc.msg}",
                tool_name=record.name,
            ) from exc
        if not isinstance(arguments, dict):
            raise UnknownToolArgumentError(
                "Tool arguments must be a JSON object",
                tool_name=record.name,
            )
        return cls(call_id=record.id, name=record.name, arguments=arguments)


@dataclass(frozen=True)
class ToolResult:
    """Result of executing a tool.

    Attributes:
        tool_name: Name of the tool that was called.
        call_id: ID of the originating call.
        success: Whether execution succeeded.
        result: Human-readable summary.
        data: Machine-readable payload returned to the model.
        error: Error message if failed.
        changes: Change logs for any state the tool modified.
    """

    tool_name: str
    call_id: str
    success: bool = True
    result: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    error: str = ""
    changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, call: ToolCall, error: str) -> ToolResult:
        return cls(tool_name=call.name, call_id=call.call_id, success=False, error=error)

    def to_message_content(self) -> str:
        """Serialize what the model receives as the tool message content."""
        if not self.success:
            return json.dumps({"error": self.error})
        if self.tool_name == ToolName.ROLL_DICE:
            return json.dumps(self.data)
        return json.dumps({"success": True, "message": self.result, **self.data})


Handler = Callable[[ToolCall], ToolResult]


def _validate(model: Any, payload: Any, call: ToolCall, argument: str) -> Any:
    """Validate a tool argument into a pydantic model."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise UnknownToolArgumentError(
            f"Invalid '{argument}' for {call.name}: {exc.errors()[0]['msg']}",
            tool_name=call.name,
            argument=argument,
        ) from exc


def _items_argument(call: ToolCall) -> list[dict[str, Any]]:
    items = call.arguments.get("items")
    if not isinstance(items, list) or not items:
        raise UnknownToolArgumentError(
            f"{call.name} requires a non-empty 'items' list",
            tool_name=call.name,
            argument="items",
        )
    if not all(isinstance(item, dict) for item in items):
        raise UnknownToolArgumentError(
            "Each entry of 'items' must be an object",
            tool_name=call.name,
            argument="items",
        )
    return items


class ToolDispatcher:
    """Executes model tool calls against a game store.

    Expected tool errors (bad notation, unknown tool, bad arguments) never
    escape ``execute``; they come back as failed results so the model
    always receives an answer for every call it issued.

    Example:
        >>> dispatcher = ToolDispatcher(store, DiceRoller(seed=1))
        >>> result = dispatcher.execute(ToolCall("call_1", "roll_dice", {"notation": "1d20"}))
        >>> result.success
        True
    """

    def __init__(self, store: GameStore, roller: DiceRoller | None = None) -> None:
        """Initialize the dispatcher.

        Args:
            store: Game store the state tools read and write.
            roller: Dice roller; a fresh unseeded roller when omitted.

        Raises:
            GameEngineError: If a tool has no handler.
        """
        self._store = store
        self._roller = roller or DiceRoller()
        self._handlers: dict[ToolName, Handler] = {
            ToolName.ROLL_DICE: self._roll_dice,
            ToolName.ADD_INVENTORY: self._add_inventory,
            ToolName.UPDATE_INVENTORY: self._update_inventory,
            ToolName.UPDATE_CHARACTER: self._update_character,
            ToolName.GET_CHARACTER_STATS: self._get_character_stats,
        }
        missing = set(ToolName) - set(self._handlers)
        if missing:
            raise GameEngineError(
                "Tool dispatcher is missing handlers",
                details={"missing": sorted(missing)},
            )

    @property
    def store(self) -> GameStore:
        return self._store

    def execute(self, call: ToolCall) -> ToolResult:
        """Execute a tool call.

        Args:
            call: The tool call to execute.

        Returns:
            ToolResult with outcome; failures are error-shaped results.
        """
        try:
            try:
                name = ToolName(call.name)
            except ValueError as exc:
                raise UnknownToolError(
                    f"Unknown tool: {call.name}",
                    tool_name=call.name,
                ) from exc
            result = self._handlers[name](call)
        except (InvalidNotationError, ToolExecutionError) as exc:
            logger.warning(
                "Tool call failed",
                tool=call.name,
                call_id=call.call_id,
                error=exc.message,
            )
            return ToolResult.failure(call, exc.message)

        logger.info(
            "Tool executed",
            tool=call.name,
            call_id=call.call_id,
            success=result.success,
        )
        return result

    def execute_record(self, record: ToolCallRecord) -> ToolResult:
        """Parse and execute a recorded tool call."""
        try:
            call = ToolCall.from_record(record)
        except UnknownToolArgumentError as exc:
            logger.warning("Tool arguments rejected", tool=record.name, call_id=record.id)
            return ToolResult(
                tool_name=record.name,
                call_id=record.id,
                success=False,
                error=exc.message,
            )
        return self.execute(call)

    def execute_tool_calls(self, records: Iterable[ToolCallRecord]) -> list[ToolResult]:
        """Execute recorded tool calls strictly in order."""
        return [self.execute_record(record) for record in records]

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _roll_dice(self, call: ToolCall) -> ToolResult:
        notation = call.arguments.get("notation") or call.arguments.get("dice")
        if not isinstance(notation, str) or not notation.strip():
            raise UnknownToolArgumentError(
                "roll_dice requires a 'notation' string",
                tool_name=call.name,
                argument="notation",
            )
        roll = self._roller.roll(notation)
        return ToolResult(
            tool_name=call.name,
            call_id=call.call_id,
            result=roll.details,
            data={"result": roll.total, "details": roll.details},
        )

    def _apply_inventory(self, call: ToolCall, update: InventoryUpdate) -> ToolResult:
        character = self._store.character
        outcome = apply_inventory_update(character.inventory, update)
        if outcome.logs:
            self._store.set_character(
                character.model_copy(update={"inventory": outcome.new_inventory})
            )

        not_found = [spec.slug or spec.id or "" for spec in outcome.unmatched]
        if not_found and not outcome.logs:
            return ToolResult(
                tool_name=call.name,
                call_id=call.call_id,
                success=False,
                error=f"Item not found: {', '.join(not_found)}",
            )

        data: dict[str, Any] = {}
        if not_found:
            data["notFound"] = not_found
        return ToolResult(
            tool_name=call.name,
            call_id=call.call_id,
            result="; ".join(outcome.logs),
            data=data,
            changes=list(outcome.logs),
        )

    def _add_inventory(self, call: ToolCall) -> ToolResult:
        specs = [
            _validate(ItemSpec, item, call, "items") for item in _items_argument(call)
        ]
        return self._apply_inventory(call, InventoryUpdate(add=specs))

    def _update_inventory(self, call: ToolCall) -> ToolResult:
        action = call.arguments.get("action")
        if action == "add":
            return self._add_inventory(call)
        if action != "remove":
            raise UnknownToolArgumentError(
                "update_inventory 'action' must be 'add' or 'remove'",
                tool_name=call.name,
                argument="action",
            )

        specs: list[RemoveSpec] = []
        for item in _items_argument(call):
            name = str(item.get("name") or "")
            payload = {
                "slug": item.get("slug") or slugify(name),
                "id": item.get("id"),
                "quantityChange": item.get("quantity", 1),
            }
            specs.append(_validate(RemoveSpec, payload, call, "items"))
        return self._apply_inventory(call, InventoryUpdate(remove=specs))

    def _update_character(self, call: ToolCall) -> ToolResult:
        update = _validate(CharacterUpdate, call.arguments, call, "arguments")
        if update.is_empty:
            raise UnknownToolArgumentError(
                "update_character needs at least one of hp, maxHp, level or stats",
                tool_name=call.name,
            )
        outcome = apply_character_update(self._store.character, update)
        self._store.set_character(outcome.new_character)
        return ToolResult(
            tool_name=call.name,
            call_id=call.call_id,
            result="; ".join(outcome.logs) or "No changes",
            changes=list(outcome.logs),
        )

    def _get_character_stats(self, call: ToolCall) -> ToolResult:
        character = self._store.character
        return ToolResult(
            tool_name=call.name,
            call_id=call.call_id,
            result=f"{character.name}, level {character.level} {character.character_class}",
            data={
                "name": character.name,
                "class": character.character_class,
                "race": character.race,
                "level": character.level,
                "hp": character.hp,
                "maxHp": character.max_hp,
                "stats": character.stats.model_dump(),
                "inventory": [
                    {"name": i.name, "quantity": i.quantity, "description": i.description}
                    for i in character.inventory
                ],
            },
        )


__all__ = [
    # Registry
    "ToolName",
    "ToolDefinition",
    "TOOL_SCHEMAS",
    "NARRATIVE_TOOLS",
    "GAME_MASTER_TOOLS",
    "get_tools_as_openai_schema",
    # Execution
    "ToolCall",
    "ToolResult",
    "ToolDispatcher",
]
