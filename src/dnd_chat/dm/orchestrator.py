"""Turn orchestrator: the narrate, act, update conversation loop.

One call to ``TurnOrchestrator.send_message`` is one turn:

1. The player's input is appended to the model history (and to the UI
   history unless the turn is hidden, as for the adventure kick-off).
2. Narrative phase: the narrative system prompt plus the model history
   are sent with the narrative tool set. While the reply requests tools,
   each call is executed in order, the assistant tool-call message and one
   tool message per call are appended, and the model is asked again. The
   number of tool rounds is capped.
3. Action phase: the actions system prompt plus the accumulated history
   (without the narrative system prompt) are sent with the structured
   ``GM_ACTIONS_SCHEMA`` and normalized.
4. Reconcile: structured character/inventory updates go through the pure
   reducers, the UI history gets GM roll entries, the narrative and one
   log per change, and the current actions are replaced.

Any package error during a turn rolls the store back to its state before
the turn, appends one error entry to the UI history and remembers the
input so ``retry_last_turn`` can resend it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum

from dnd_chat.core.config import GameSettings, get_settings
from dnd_chat.core.exceptions import DndChatError, ToolLoopLimitError
from dnd_chat.core.logging import get_logger, turn_context
from dnd_chat.dm.client import ChatModel
from dnd_chat.dm.normalizer import normalize_response
from dnd_chat.dm.prompts import (
    actions_system_prompt,
    initial_adventure_prompt,
    narrative_system_prompt,
)
from dnd_chat.dm.schemas import GM_ACTIONS_SCHEMA
from dnd_chat.engine.dice import DiceRoller
from dnd_chat.engine.reducers import apply_character_update, apply_inventory_update
from dnd_chat.engine.tools import (
    GAME_MASTER_TOOLS,
    NARRATIVE_TOOLS,
    ToolDispatcher,
    ToolName,
    ToolResult,
    get_tools_as_openai_schema,
)
from dnd_chat.models.character import Character, CharacterUpdate, InventoryUpdate, new_id
from dnd_chat.models.messages import GameAction, LLMMessage, MessageKind, UIMessage
from dnd_chat.storage.store import GameStore


logger = get_logger(__name__)


class TurnPhase(StrEnum):
    """Where the orchestrator is within a turn."""

    IDLE = "idle"
    AWAITING_NARRATIVE = "awaiting_narrative"
    AWAITING_TOOL_EXECUTION = "awaiting_tool_execution"
    AWAITING_ACTIONS = "awaiting_actions"
    RECONCILING = "reconciling"
    FAILED = "failed"


@dataclass
class TurnOutcome:
    """Everything one model round-trip produced.

    Attributes:
        narrative: Story text from the narrative phase.
        actions: Normalized next actions.
        llm_history_updates: Model-history entries produced this turn, in
            order: assistant tool-call messages, their tool results and the
            final narrative.
        tool_results: Results of every executed tool call.
        character_updates: Structured character change, if any.
        inventory_updates: Structured inventory change, if any.
        tool_rounds: Number of tool rounds in the narrative phase.
    """

    narrative: str
    actions: list[GameAction] = field(default_factory=list)
    llm_history_updates: list[LLMMessage] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    character_updates: CharacterUpdate | None = None
    inventory_updates: InventoryUpdate | None = None
    tool_rounds: int = 0


@dataclass(frozen=True)
class _FailedTurn:
    content: str
    hidden: bool
    user_message_id: str | None
    error_message_id: str


def roll_messages_from_history(messages: list[LLMMessage]) -> list[UIMessage]:
    """Build UI entries for the GM dice rolls recorded in model history.

    Each ``roll_dice`` call with a matching successful tool result yields
    ``🎲 **GM Rolled <notation>**: <result>``. Calls whose arguments or
    result cannot be read are skipped.
    """
    results: dict[str, str] = {
        message.tool_call_id: message.content or ""
        for message in messages
        if message.role == "tool" and message.tool_call_id
    }

    entries: list[UIMessage] = []
    for message in messages:
        if message.role != "assistant" or not message.tool_calls:
            continue
        for call in message.tool_calls:
            if call.name != ToolName.ROLL_DICE or call.id not in results:
                continue
            try:
                args = json.loads(call.arguments or "{}")
                result = json.loads(results[call.id])
            except json.JSONDecodeError:
                logger.warning("Unreadable roll record", call_id=call.id)
                continue
            if not isinstance(args, dict) or not isinstance(result, dict):
                continue
            notation = args.get("notation") or args.get("dice")
            total = result.get("result")
            if not notation or total is None:
                continue
            entries.append(
                UIMessage(
                    role="system",
                    content=f"🎲 **GM Rolled {notation}**: {total}",
                    kind=MessageKind.ROLL,
                )
            )
    return entries


class TurnOrchestrator:
    """Drives turns against a model and writes the results to a store.

    One turn is in flight at a time: ``send_message`` while loading is a
    no-op. All model calls and tool executions within a turn are
    sequential.

    Example:
        >>> orchestrator = TurnOrchestrator(GameStore(), OpenAIChatModel())
        >>> outcome = orchestrator.send_message("I open the door.")
        >>> outcome.actions if outcome else orchestrator.last_failed_input
    """

    def __init__(
        self,
        store: GameStore,
        model: ChatModel,
        *,
        roller: DiceRoller | None = None,
        settings: GameSettings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: The game store to read and write.
            model: Chat model used for both phases.
            roller: Dice roller for GM rolls.
            settings: Protocol settings; the global settings when omitted.
        """
        self._store = store
        self._model = model
        self._settings = settings or get_settings().game
        self._dispatcher = ToolDispatcher(store, roller)
        self._phase = TurnPhase.IDLE
        self._is_loading = False
        self._failed_turn: _FailedTurn | None = None

        logger.info(
            "TurnOrchestrator initialized",
            model=model.model_name,
            max_tool_rounds=self._settings.max_tool_rounds,
            state_tools=self._settings.state_tools_enabled,
        )

    @property
    def store(self) -> GameStore:
        return self._store

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_failed_input(self) -> str | None:
        """Input of the last failed turn, if it has not been retried yet."""
        return self._failed_turn.content if self._failed_turn else None

    def _narrative_tools(self) -> list[dict]:
        names = GAME_MASTER_TOOLS if self._settings.state_tools_enabled else NARRATIVE_TOOLS
        return get_tools_as_openai_schema(names)

    # -------------------------------------------------------------------------
    # Model round-trips
    # -------------------------------------------------------------------------

    def generate(
        self,
        history: list[LLMMessage],
        character: Character | None = None,
    ) -> TurnOutcome:
        """Run both protocol phases for the given model history.

        Tool calls are executed through the dispatcher and may write the
        store. The history itself is not modified.

        Args:
            history: Model history ending with the player's message.
            character: Character for the narrative prompt; the store's
                character when omitted. The action prompt always sees the
                store's character after any tool changes.

        Returns:
            The turn outcome.

        Raises:
            ToolLoopLimitError: If the model keeps calling tools.
            MalformedResponseError: If the action payload is invalid.
            TransportError: If the model cannot be reached.
            ConfigurationError: If the model endpoint is misconfigured.
        """
        character = character or self._store.character
        tools = self._narrative_tools()
        max_rounds = self._settings.max_tool_rounds

        # Phase 1: narrative
        self._phase = TurnPhase.AWAITING_NARRATIVE
        messages = [LLMMessage.system(narrative_system_prompt(character)), *history]
        updates: list[LLMMessage] = []
        tool_results: list[ToolResult] = []
        rounds = 0

        reply = self._model.complete(messages, tools=tools)
        while reply.tool_calls:
            if rounds >= max_rounds:
                raise ToolLoopLimitError(
                    f"Model still requesting tools after {max_rounds} rounds",
                    max_rounds=max_rounds,
                    model=self._model.model_name,
                )
            rounds += 1
            self._phase = TurnPhase.AWAITING_TOOL_EXECUTION

            results = self._dispatcher.execute_tool_calls(reply.tool_calls)
            round_messages = [
                LLMMessage.assistant(reply.content, reply.tool_calls),
                *(LLMMessage.tool(r.call_id, r.to_message_content()) for r in results),
            ]
            messages.extend(round_messages)
            updates.extend(round_messages)
            tool_results.extend(results)

            logger.debug("Tool round complete", round=rounds, calls=len(results))
            self._phase = TurnPhase.AWAITING_NARRATIVE
            reply = self._model.complete(messages, tools=tools)

        narrative = reply.content or ""
        if not narrative.strip():
            logger.warning("Model returned an empty narrative")
        final = LLMMessage.assistant(narrative)
        messages.append(final)
        updates.append(final)

        # Phase 2: actions
        self._phase = TurnPhase.AWAITING_ACTIONS
        action_messages = [
            LLMMessage.system(
                actions_system_prompt(
                    self._store.character,
                    min_actions=self._settings.min_actions,
                    max_actions=self._settings.max_actions,
                )
            ),
            *messages[1:],
        ]
        action_reply = self._model.complete(action_messages, response_format=GM_ACTIONS_SCHEMA)
        normalized = normalize_response(
            action_reply.content,
            min_actions=self._settings.min_actions,
            max_actions=self._settings.max_actions,
        )

        logger.info(
            "Turn generated",
            tool_rounds=rounds,
            tool_calls=len(tool_results),
            actions=len(normalized.actions),
        )
        return TurnOutcome(
            narrative=narrative,
            actions=normalized.actions,
            llm_history_updates=updates,
            tool_results=tool_results,
            character_updates=normalized.character_updates,
            inventory_updates=normalized.inventory_updates,
            tool_rounds=rounds,
        )

    # -------------------------------------------------------------------------
    # Turns
    # -------------------------------------------------------------------------

    def _reconcile(self, outcome: TurnOutcome) -> None:
        """Write a generated turn into the store."""
        self._phase = TurnPhase.RECONCILING
        store = self._store
        logs = [log for result in outcome.tool_results for log in result.changes]

        if outcome.character_updates is not None:
            applied = apply_character_update(store.character, outcome.character_updates)
            store.set_character(applied.new_character)
            logs.extend(applied.logs)

        if outcome.inventory_updates is not None:
            applied_inventory = apply_inventory_update(
                store.character.inventory, outcome.inventory_updates
            )
            store.set_character(
                store.character.model_copy(update={"inventory": applied_inventory.new_inventory})
            )
            logs.extend(applied_inventory.logs)

        store.extend_llm_history(outcome.llm_history_updates)

        if self._settings.ui_roll_messages:
            for entry in roll_messages_from_history(outcome.llm_history_updates):
                store.add_ui_message(entry)
        if outcome.narrative:
            store.add_ui_message(UIMessage(role="assistant", content=outcome.narrative))
        for log in logs:
            store.add_ui_message(UIMessage(role="system", content=log, kind=MessageKind.LOG))

        store.set_current_actions(outcome.actions)

    def send_message(self, content: str, *, hidden: bool = False) -> TurnOutcome | None:
        """Play one turn.

        Args:
            content: The player's input.
            hidden: Keep the input out of the UI history.

        Returns:
            The outcome, or None if the turn was skipped or failed.
        """
        if not content or not content.strip():
            return None
        if self._is_loading:
            logger.warning("Turn already in progress; ignoring input")
            return None

        self._is_loading = True
        self._failed_turn = None
        try:
            with turn_context(new_id()[:8], hidden=hidden):
                return self._play_turn(content, hidden)
        finally:
            self._is_loading = False

    def _play_turn(self, content: str, hidden: bool) -> TurnOutcome | None:
        store = self._store
        user_message_id: str | None = None
        if not hidden:
            user_message = UIMessage(role="user", content=content, kind=MessageKind.INPUT)
            store.add_ui_message(user_message)
            user_message_id = user_message.id

        try:
            with store.transaction():
                store.add_llm_message(LLMMessage.user(content))
                outcome = self.generate(store.llm_history)
                self._reconcile(outcome)
        except DndChatError as exc:
            logger.error("Turn failed", error_type=type(exc).__name__, error=str(exc))
            self._fail_turn(exc.message, content, hidden, user_message_id)
            return None
        except Exception as exc:
            logger.exception("Turn failed unexpectedly", error_type=type(exc).__name__)
            self._fail_turn(str(exc) or type(exc).__name__, content, hidden, user_message_id)
            return None

        self._phase = TurnPhase.IDLE
        logger.info("Turn settled", actions=len(outcome.actions))
        return outcome

    def _fail_turn(
        self,
        reason: str,
        content: str,
        hidden: bool,
        user_message_id: str | None,
    ) -> None:
        """Append the error entry and remember the input for retry."""
        self._phase = TurnPhase.FAILED
        error_message = UIMessage(
            role="system",
            content=f"Something went wrong: {reason}",
            kind=MessageKind.ERROR,
        )
        self._store.add_ui_message(error_message)
        self._failed_turn = _FailedTurn(
            content=content,
            hidden=hidden,
            user_message_id=user_message_id,
            error_message_id=error_message.id,
        )

    def retry_last_turn(self) -> TurnOutcome | None:
        """Resend the input of the last failed turn.

        The failed turn's user entry and error entry are removed from the
        UI history first.

        Returns:
            The outcome of the retried turn, or None if there is nothing to
            retry or it failed again.
        """
        failed = self._failed_turn
        if failed is None or self._is_loading:
            return None

        stale = [failed.error_message_id]
        if failed.user_message_id:
            stale.append(failed.user_message_id)
        self._store.remove_ui_messages(stale)
        self._failed_turn = None

        logger.info("Retrying failed turn")
        return self.send_message(failed.content, hidden=failed.hidden)

    def start_adventure(self, setting: str | None = None) -> TurnOutcome | None:
        """Kick off a new adventure with a hidden opening prompt.

        Args:
            setting: World description; the store's setting when omitted.

        Returns:
            The outcome of the opening turn.
        """
        if setting:
            self._store.set_setting(setting)
        self._store.start_game()
        prompt = initial_adventure_prompt(self._store.character, self._store.setting)
        return self.send_message(prompt, hidden=True)


__all__ = [
    "TurnPhase",
    "TurnOutcome",
    "TurnOrchestrator",
    "roll_messages_from_history",
]
