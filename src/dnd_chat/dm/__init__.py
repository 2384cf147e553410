"""Game-master conversation layer.

Submodules:
    client: Chat model protocol and the openai-backed implementation
    prompts: System prompts for the narrative and action phases
    schemas: Structured-output schema for the action phase
    normalizer: Coercion of model JSON into actions and updates
    orchestrator: The turn state machine
"""

from __future__ import annotations

from dnd_chat.dm.client import ChatModel, ModelReply, OpenAIChatModel
from dnd_chat.dm.normalizer import (
    NormalizedResponse,
    normalize_actions,
    normalize_response,
    parse_model_json,
)
from dnd_chat.dm.orchestrator import (
    TurnOrchestrator,
    TurnOutcome,
    TurnPhase,
    roll_messages_from_history,
)
from dnd_chat.dm.prompts import (
    actions_system_prompt,
    character_context,
    initial_adventure_prompt,
    narrative_system_prompt,
)
from dnd_chat.dm.schemas import GM_ACTIONS_SCHEMA


__all__ = [
    # Client
    "ChatModel",
    "ModelReply",
    "OpenAIChatModel",
    # Normalizer
    "NormalizedResponse",
    "parse_model_json",
    "normalize_actions",
    "normalize_response",
    # Orchestrator
    "TurnPhase",
    "TurnOutcome",
    "TurnOrchestrator",
    "roll_messages_from_history",
    # Prompts & schemas
    "character_context",
    "narrative_system_prompt",
    "actions_system_prompt",
    "initial_adventure_prompt",
    "GM_ACTIONS_SCHEMA",
]
