"""Coercion of untrusted model JSON into game actions and updates.

The model's structured output is parsed strictly (bad JSON fails the
turn) but read leniently: optional action fields that hold ``null``,
``"NaN"`` or an empty string are treated as absent, an unparsable
difficulty class is dropped, and malformed update objects are discarded
with a warning instead of aborting the turn.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from dnd_chat.core.exceptions import MalformedResponseError
from dnd_chat.core.logging import get_logger
from dnd_chat.models.character import CharacterUpdate, InventoryUpdate
from dnd_chat.models.messages import GameAction


logger = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

_ABSENT_SENTINELS = ("NaN", "")


@dataclass(frozen=True)
class NormalizedResponse:
    """The model's structured output in internal form.

    Attributes:
        narrative: Story text (empty for the action-phase payload).
        actions: Proposed next actions.
        character_updates: Optional character change.
        inventory_updates: Optional inventory change.
    """

    narrative: str = ""
    actions: list[GameAction] = field(default_factory=list)
    character_updates: CharacterUpdate | None = None
    inventory_updates: InventoryUpdate | None = None


def _is_present(value: Any) -> bool:
    """False for None, non-finite floats, the string "NaN" and the empty string."""
    if value is None:
        return False
    if isinstance(value, str) and value.strip() in _ABSENT_SENTINELS:
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return True


def _parse_dc(value: Any) -> int | None:
    """Parse a difficulty class leniently: leading integer digits only."""
    if not _is_present(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _INT_PREFIX.match(str(value))
    return int(match.group(1)) if match else None


def parse_model_json(text: str | None) -> dict[str, Any]:
    """Parse model output as a JSON object.

    Args:
        text: Raw model content, optionally wrapped in a ```json fence.

    Returns:
        The decoded object.

    Raises:
        MalformedResponseError: If the content is empty, not JSON or not
            an object.
    """
    if text is None or not text.strip():
        raise MalformedResponseError("Model returned no content")

    stripped = text.strip()
    fenced = _FENCE_PATTERN.match(stripped)
    if fenced:
        stripped = fenced.group(1)

    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(
            f"Invalid JSON response from model: {exc.msg}",
            details={"position": exc.pos},
        ) from exc

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            "Model response must be a JSON object",
            details={"type": type(payload).__name__},
        )
    return payload


def _normalize_action(raw: dict[str, Any], index: int) -> GameAction | None:
    description = raw.get("description")
    if not _is_present(description) or not isinstance(description, str):
        logger.warning("Dropping action without description", index=index)
        return None

    dice_roll = raw.get("diceRoll")
    dice_reason = raw.get("diceReason")
    dc_value = raw.get("difficultyClass")

    if isinstance(dice_roll, dict):
        nested = dice_roll
        dice_roll = nested.get("notation")
        dice_reason = nested.get("reason", dice_reason)
        dc_value = nested.get("dc", dc_value)

    action_id = raw.get("id")
    return GameAction(
        id=str(action_id) if _is_present(action_id) else f"action-{index}",
        description=description.strip(),
        dice_roll=str(dice_roll).strip() if _is_present(dice_roll) else None,
        dice_reason=str(dice_reason).strip() if _is_present(dice_reason) else None,
        difficulty_class=_parse_dc(dc_value),
    )


def normalize_actions(
    raw_actions: Any,
    *,
    min_actions: int = 2,
    max_actions: int = 5,
) -> list[GameAction]:
    """Coerce raw action entries into ``GameAction`` records.

    Args:
        raw_actions: The ``actions`` value from the model payload.
        min_actions: Fewest actions expected; fewer is logged, not rejected.
        max_actions: Most actions expected; more is logged, not rejected.

    Returns:
        The normalized actions, in model order.

    Raises:
        MalformedResponseError: If ``raw_actions`` is not a list.
    """
    if not isinstance(raw_actions, list):
        raise MalformedResponseError(
            "Model response 'actions' must be a list",
            details={"type": type(raw_actions).__name__},
        )

    actions: list[GameAction] = []
    for index, raw in enumerate(raw_actions):
        if not isinstance(raw, dict):
            logger.warning("Dropping non-object action", index=index)
            continue
        action = _normalize_action(raw, index)
        if action is not None:
            actions.append(action)

    if not min_actions <= len(actions) <= max_actions:
        logger.warning(
            "Unexpected number of actions",
            count=len(actions),
            min_actions=min_actions,
            max_actions=max_actions,
        )
    return actions


def _optional_update(payload: dict[str, Any], key: str, model: Any) -> Any:
    raw = payload.get(key)
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("Ignoring non-object update", key=key)
        return None
    try:
        update = model.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring invalid update", key=key, error=str(exc.errors()[0]["msg"]))
        return None
    return None if update.is_empty else update


def normalize_response(
    text: str | None,
    *,
    min_actions: int = 2,
    max_actions: int = 5,
) -> NormalizedResponse:
    """Parse and normalize a structured model response.

    Accepts both the action-phase payload (``actions`` plus optional
    updates) and the single-phase payload that also carries ``narrative``.

    Raises:
        MalformedResponseError: If the JSON is invalid or ``actions`` is
            missing or not a list.
    """
    payload = parse_model_json(text)
    if "actions" not in payload:
        raise MalformedResponseError("Model response is missing 'actions'")

    narrative = payload.get("narrative")
    return NormalizedResponse(
        narrative=narrative if isinstance(narrative, str) else "",
        actions=normalize_actions(
            payload["actions"],
            min_actions=min_actions,
            max_actions=max_actions,
        ),
        character_updates=_optional_update(payload, "characterUpdates", CharacterUpdate),
        inventory_updates=_optional_update(payload, "inventoryUpdates", InventoryUpdate),
    )


__all__ = [
    "NormalizedResponse",
    "parse_model_json",
    "normalize_actions",
    "normalize_response",
]
