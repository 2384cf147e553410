"""FastAPI endpoints under /api.

``POST /api/chat`` runs one model round-trip (narrative phase with its
tool loop, then the action phase) for a client that keeps its own game
state: the request carries the model history and the character, the
response carries the assistant message and the model-history entries to
append. Nothing is persisted server-side.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dnd_chat import __version__
from dnd_chat.core.config import Settings, get_settings
from dnd_chat.core.exceptions import ConfigurationError, DndChatError
from dnd_chat.core.logging import configure_logging, get_logger
from dnd_chat.dm.client import ChatModel, OpenAIChatModel
from dnd_chat.dm.orchestrator import TurnOrchestrator
from dnd_chat.models.character import Character
from dnd_chat.models.messages import LLMMessage
from dnd_chat.storage.store import GameStore


logger = get_logger(__name__)

router = APIRouter()


class ChatBody(BaseModel):
    messages: list[LLMMessage] = Field(min_length=1)
    character: Character


@router.get("/health")
def health() -> dict[str, str]:
    """Health check."""
    return {"status": "ok", "version": __version__}


@router.post("/chat")
def chat(body: ChatBody, request: Request) -> dict[str, Any]:
    """Generate the game master's reply to the latest message."""
    settings: Settings = request.app.state.settings
    model: ChatModel = request.app.state.chat_model or OpenAIChatModel(settings.llm)
    store = GameStore(character=body.character, llm_history=body.messages)
    orchestrator = TurnOrchestrator(store, model, settings=settings.game)

    outcome = orchestrator.generate(body.messages, body.character)

    message: dict[str, Any] = {
        "role": "assistant",
        "content": outcome.narrative,
        "actions": [a.model_dump(mode="json", by_alias=True) for a in outcome.actions],
    }
    if outcome.character_updates is not None:
        message["characterUpdates"] = outcome.character_updates.model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
    if outcome.inventory_updates is not None:
        message["inventoryUpdates"] = outcome.inventory_updates.model_dump(
            mode="json", by_alias=True
        )

    return {
        "message": message,
        "llmHistoryUpdates": [
            m.model_dump(mode="json", exclude_none=True) for m in outcome.llm_history_updates
        ],
        "character": store.character.to_public_dict(),
    }


async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Chat endpoint misconfigured", error=exc.message, **exc.details)
    return JSONResponse(status_code=500, content={"error": exc.message, "details": exc.details})


async def _upstream_error(request: Request, exc: DndChatError) -> JSONResponse:
    logger.error("Chat request failed", error_type=type(exc).__name__, error=exc.message)
    return JSONResponse(status_code=502, content={"error": exc.message})


def create_app(
    model: ChatModel | None = None,
    *,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the API application and configure logging.

    Args:
        model: Chat model to use; an ``OpenAIChatModel`` built from the
            settings on each request when omitted.
        settings: Application settings; the global settings when omitted.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.app_name, version=__version__, debug=settings.debug)
    app.state.chat_model = model
    app.state.settings = settings
    app.include_router(router, prefix="/api")
    app.add_exception_handler(ConfigurationError, _configuration_error)
    app.add_exception_handler(DndChatError, _upstream_error)
    return app


__all__ = ["ChatBody", "router", "create_app"]
