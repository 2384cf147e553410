"""Integration tests for complete turns against the game store.

Each test drives ``TurnOrchestrator.send_message`` with a scripted model
and checks the store afterwards: character, inventory, both histories and
the pending actions.
"""

from __future__ import annotations

import json
from typing import Any

import pytest

from dnd_chat.core.config import GameSettings, LLMSettings
from dnd_chat.core.exceptions import TransportError
from dnd_chat.dm.client import OpenAIChatModel
from dnd_chat.dm.orchestrator import TurnOrchestrator, TurnPhase
from dnd_chat.engine.dice import DiceRoller
from dnd_chat.models.character import Character, Item
from dnd_chat.models.messages import LLMMessage, MessageKind
from dnd_chat.storage.store import GameStore


def _orchestrator(
    store: GameStore,
    model: Any,
    settings: GameSettings | None = None,
) -> TurnOrchestrator:
    return TurnOrchestrator(
        store,
        model,
        roller=DiceRoller(seed=42),
        settings=settings or GameSettings(max_tool_rounds=3),
    )


def _assert_tool_pairing(history: list[LLMMessage]) -> None:
    """Every assistant tool-call message is followed by one result per call."""
    for index, message in enumerate(history):
        if message.role != "assistant" or not message.tool_calls:
            continue
        following = history[index + 1 : index + 1 + len(message.tool_calls)]
        assert [m.role for m in following] == ["tool"] * len(message.tool_calls)
        assert [m.tool_call_id for m in following] == [c.id for c in message.tool_calls]


@pytest.fixture
def potion_store() -> GameStore:
    """Store whose character carries potions only."""
    character = Character(
        name="Edda",
        hp=10,
        max_hp=12,
        inventory=[Item(id="p", name="Potion", quantity=1)],
    )
    return GameStore(character=character)


class TestSuccessfulTurn:
    """Tests for turns that settle."""

    def test_plain_turn(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test a turn appends to both histories and replaces actions."""
        model = scripted_model([replies.narrative("The inn is warm."), replies.actions()])
        orchestrator = _orchestrator(store, model)

        outcome = orchestrator.send_message("I enter the inn.")

        assert outcome is not None
        assert [(m.role, m.content) for m in store.chat_history] == [
            ("user", "I enter the inn."),
            ("assistant", "The inn is warm."),
        ]
        assert [m.role for m in store.llm_history] == ["user", "assistant"]
        assert len(store.current_actions) == 2
        assert orchestrator.phase == TurnPhase.IDLE
        assert orchestrator.is_loading is False

    def test_remove_last_potion(
        self,
        potion_store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test a structured removal of the last unit deletes the item."""
        model = scripted_model(
            [
                replies.narrative("You drink the potion."),
                replies.actions(
                    inventoryUpdates={"remove": [{"slug": "potion", "quantityChange": -1}]}
                ),
            ]
        )
        _orchestrator(potion_store, model).send_message("I drink my potion.")

        assert potion_store.character.inventory == []
        logs = [m.content for m in potion_store.chat_history if m.kind == MessageKind.LOG]
        assert "Removed Potion" in logs

    def test_remove_part_of_stack(self, scripted_model: Any, replies: Any) -> None:
        """Test a partial structured removal decrements the stack."""
        store = GameStore(
            character=Character(inventory=[Item(name="Potion", quantity=5)])
        )
        model = scripted_model(
            [
                replies.narrative(),
                replies.actions(
                    inventoryUpdates={"remove": [{"slug": "potion", "quantityChange": -2}]}
                ),
            ]
        )
        _orchestrator(store, model).send_message("I hand over two potions.")

        assert store.character.inventory[0].quantity == 3
        logs = [m.content for m in store.chat_history if m.kind == MessageKind.LOG]
        assert "Removed 2x Potion" in logs

    def test_structured_hp_update(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test an hp update is clamped and logged after the narrative."""
        model = scripted_model(
            [replies.narrative("A trap springs!"), replies.actions(characterUpdates={"hp": -4})]
        )
        _orchestrator(store, model).send_message("I open the chest.")

        assert store.character.hp == 0
        assert [m.kind for m in store.chat_history] == [
            MessageKind.INPUT,
            MessageKind.NARRATION,
            MessageKind.LOG,
        ]
        assert store.chat_history[-1].content == "HP -> 0"

    def test_gm_rolls_twice_in_one_message(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test two rolls in one assistant message get two paired results."""
        model = scripted_model(
            [
                replies.tools(
                    replies.call("roll_dice", {"notation": "1d20+3", "reason": "Orc attack"}),
                    replies.call("roll_dice", {"notation": "1d8+1", "reason": "Orc damage"}),
                ),
                replies.narrative("The orc's axe bites deep."),
                replies.actions(),
            ]
        )
        _orchestrator(store, model).send_message("I charge the orc.")

        history = store.llm_history
        assert [m.role for m in history] == ["user", "assistant", "tool", "tool", "assistant"]
        assert len(history[1].tool_calls) == 2
        _assert_tool_pairing(history)
        assert history[-1].content == "The orc's axe bites deep."

        rolls = [m.content for m in store.chat_history if m.kind == MessageKind.ROLL]
        assert len(rolls) == 2
        assert rolls[0].startswith("🎲 **GM Rolled 1d20+3**: ")
        assert rolls[1].startswith("🎲 **GM Rolled 1d8+1**: ")

    def test_gm_rolls_over_two_rounds(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test consecutive tool rounds keep their ordering."""
        model = scripted_model(
            [replies.roll(), replies.roll("1d6"), replies.narrative(), replies.actions()]
        )
        outcome = _orchestrator(store, model).send_message("I wait.")

        assert outcome is not None
        assert outcome.tool_rounds == 2
        assert [m.role for m in store.llm_history] == [
            "user",
            "assistant",
            "tool",
            "assistant",
            "tool",
            "assistant",
        ]
        _assert_tool_pairing(store.llm_history)

    def test_roll_messages_can_be_disabled(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test GM rolls stay out of the UI history when disabled."""
        settings = GameSettings(max_tool_rounds=3, ui_roll_messages=False)
        model = scripted_model([replies.roll(), replies.narrative(), replies.actions()])
        _orchestrator(store, model, settings).send_message("I wait.")

        assert all(m.kind != MessageKind.ROLL for m in store.chat_history)

    def test_failed_roll_is_reported_to_model(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test an invalid notation becomes an error result and the turn goes on."""
        model = scripted_model(
            [replies.roll("dd20"), replies.narrative("The spell fizzles."), replies.actions()]
        )
        outcome = _orchestrator(store, model).send_message("I cast a spell.")

        assert outcome is not None
        tool_message = store.llm_history[2]
        assert "error" in json.loads(tool_message.content)
        assert all(m.kind != MessageKind.ROLL for m in store.chat_history)

    def test_state_tool_logs(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test changes made by tools are logged in the UI history."""
        settings = GameSettings(max_tool_rounds=3, state_tools_enabled=True)
        model = scripted_model(
            [
                replies.tools(
                    replies.call("add_inventory", {"items": [{"name": "Silver Key"}]})
                ),
                replies.narrative("You pocket a key."),
                replies.actions(),
            ]
        )
        _orchestrator(store, model, settings).send_message("I search the desk.")

        assert store.character.find_item("Silver Key") is not None
        assert store.chat_history[-1].content == "Added 1x Silver Key"

    def test_malformed_structured_removal_is_ignored(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test a removal with a null quantity leaves the inventory alone."""
        model = scripted_model(
            [
                replies.narrative("You climb."),
                replies.actions(
                    inventoryUpdates={"remove": [{"slug": "rope", "quantityChange": None}]}
                ),
            ]
        )
        orchestrator = _orchestrator(store, model)

        assert orchestrator.send_message("I climb") is not None
        assert store.character.find_item("Rope") is not None
        assert [m.role for m in store.chat_history] == ["user", "assistant"]
        assert orchestrator.phase == TurnPhase.IDLE


class TestFailedTurn:
    """Tests for turns that fail and roll back."""

    def test_malformed_actions_roll_back(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test bad phase-two JSON leaves the store as it was plus one error entry."""
        settings = GameSettings(max_tool_rounds=3, state_tools_enabled=True)
        model = scripted_model(
            [
                replies.tools(
                    replies.call(
                        "update_inventory",
                        {"action": "remove", "items": [{"name": "Healing Potion"}]},
                    )
                ),
                replies.narrative("You drink."),
                replies.narrative("{broken json"),
            ]
        )
        before_character = store.character
        orchestrator = _orchestrator(store, model, settings)

        outcome = orchestrator.send_message("I drink a potion.")

        assert outcome is None
        assert store.character == before_character
        assert store.llm_history == []
        assert store.current_actions == []
        assert [m.role for m in store.chat_history] == ["user", "system"]
        error = store.chat_history[-1]
        assert error.kind == MessageKind.ERROR
        assert error.content.startswith("Something went wrong: ")
        assert orchestrator.phase == TurnPhase.FAILED
        assert orchestrator.last_failed_input == "I drink a potion."
        assert orchestrator.is_loading is False

    def test_transport_error(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test a transport failure is surfaced as one error entry."""
        model = scripted_model([TransportError("Endpoint unreachable")])
        orchestrator = _orchestrator(store, model)

        assert orchestrator.send_message("Hello?") is None
        assert store.chat_history[-1].content == "Something went wrong: Endpoint unreachable"
        assert store.llm_history == []

    def test_unexpected_error(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test a non-application error still fails the turn cleanly and can be retried."""
        model = scripted_model(
            [
                RuntimeError("socket closed"),
                replies.narrative("You climb."),
                replies.actions(),
            ]
        )
        orchestrator = _orchestrator(store, model)

        assert orchestrator.send_message("I climb") is None
        assert [m.kind for m in store.chat_history] == [MessageKind.INPUT, MessageKind.ERROR]
        assert store.chat_history[-1].content == "Something went wrong: socket closed"
        assert store.llm_history == []
        assert orchestrator.phase == TurnPhase.FAILED
        assert orchestrator.last_failed_input == "I climb"
        assert orchestrator.is_loading is False

        assert orchestrator.retry_last_turn() is not None
        assert [m.content for m in store.chat_history] == ["I climb", "You climb."]

    def test_tool_loop_cap(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test a runaway tool loop fails the turn after the cap."""
        model = scripted_model([replies.roll() for _ in range(10)])
        orchestrator = _orchestrator(store, model)

        assert orchestrator.send_message("Hello?") is None
        assert len(model.calls) == 4
        assert store.llm_history == []
        assert store.chat_history[-1].is_error

    def test_missing_configuration(self, store: GameStore) -> None:
        """Test an unconfigured endpoint fails the turn with a clear error."""
        orchestrator = _orchestrator(store, OpenAIChatModel(LLMSettings()))

        assert orchestrator.send_message("Hello?") is None
        assert "API key" in store.chat_history[-1].content

    def test_retry_last_turn(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test a retry drops the stale entries and replays the input."""
        model = scripted_model(
            [
                TransportError("Endpoint unreachable"),
                replies.narrative("The door opens."),
                replies.actions(),
            ]
        )
        orchestrator = _orchestrator(store, model)
        orchestrator.send_message("I push the door.")

        outcome = orchestrator.retry_last_turn()

        assert outcome is not None
        assert [(m.role, m.content) for m in store.chat_history] == [
            ("user", "I push the door."),
            ("assistant", "The door opens."),
        ]
        assert [m.content for m in store.llm_history] == ["I push the door.", "The door opens."]
        assert orchestrator.last_failed_input is None
        assert orchestrator.phase == TurnPhase.IDLE

    def test_retry_without_failure(self, store: GameStore, scripted_model: Any) -> None:
        """Test there is nothing to retry after a clean start."""
        assert _orchestrator(store, scripted_model([])).retry_last_turn() is None


class TestTurnGuards:
    """Tests for skipped turns."""

    def test_blank_input(self, store: GameStore, scripted_model: Any) -> None:
        """Test blank input is ignored."""
        model = scripted_model([])
        orchestrator = _orchestrator(store, model)

        assert orchestrator.send_message("   ") is None
        assert model.calls == []
        assert store.chat_history == []

    def test_no_reentrant_turn(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test input sent while a turn is loading is ignored."""
        nested: list[Any] = []

        class ImpatientModel(scripted_model):  # type: ignore[misc, valid-type]
            def complete(self, messages: Any, **kwargs: Any) -> Any:
                if not nested:
                    nested.append(orchestrator.send_message("Hurry up!"))
                return super().complete(messages, **kwargs)

        model = ImpatientModel([replies.narrative(), replies.actions()])
        orchestrator = _orchestrator(store, model)

        assert orchestrator.send_message("I wait.") is not None
        assert nested == [None]
        assert [m.content for m in store.llm_history if m.role == "user"] == ["I wait."]


class TestAdventureStart:
    """Tests for the hidden kick-off."""

    def test_start_adventure(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test the opening prompt reaches the model but not the UI."""
        model = scripted_model(
            [replies.narrative("Fog rolls over the harbor."), replies.actions()]
        )
        orchestrator = _orchestrator(store, model)

        outcome = orchestrator.start_adventure("A fog-bound harbor town")

        assert outcome is not None
        assert store.is_game_started is True
        assert store.setting == "A fog-bound harbor town"
        assert [m.role for m in store.chat_history] == ["assistant"]
        assert store.llm_history[0].role == "user"
        assert "A fog-bound harbor town" in store.llm_history[0].content
        assert "Mira Quickfingers" in store.llm_history[0].content

    def test_hidden_retry_stays_hidden(
        self,
        store: GameStore,
        scripted_model: Any,
        replies: Any,
    ) -> None:
        """Test retrying a failed kick-off keeps the prompt out of the UI."""
        model = scripted_model(
            [TransportError("down"), replies.narrative("Welcome."), replies.actions()]
        )
        orchestrator = _orchestrator(store, model)

        assert orchestrator.start_adventure() is None
        assert [m.kind for m in store.chat_history] == [MessageKind.ERROR]

        assert orchestrator.retry_last_turn() is not None
        assert [(m.role, m.content) for m in store.chat_history] == [("assistant", "Welcome.")]
