"""Structured logging for turns, tool calls and model requests.

structlog is configured once per process from ``Settings``: a colored
console renderer while debugging, JSON lines otherwise. Every event
carries the app name and version, any value bound for the current turn
(``turn_id``) and never the model API key.

Example:
    >>> from dnd_chat.core.logging import configure_logging, get_logger, turn_context
    >>> configure_logging()
    >>> logger = get_logger(__name__)
    >>> with turn_context("a1b2c3d4"):
    ...     logger.info("Tool executed", tool="roll_dice", total=14)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from dnd_chat.core.config import Settings


_SECRET_KEYS = frozenset({"api_key", "authorization", "token"})
_THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every event with the package name and version."""
    from dnd_chat import __version__

    event_dict["app"] = "dnd_chat"
    event_dict["version"] = __version__
    return event_dict


def redact_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask credential-looking values before they are rendered.

    Args:
        logger: The wrapped logger instance.
        method_name: Name of the logging method called.
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary with secrets replaced by ``***``.
    """
    for key in event_dict.keys() & _SECRET_KEYS:
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library loggers.

    Explicit arguments win over the settings; with neither, the global
    settings decide (``log_level``, JSON output unless ``debug``).

    Args:
        settings: Settings to read defaults from.
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render JSON lines instead of the console format.
        log_file: Optional path to a log file for persistent logging.
    """
    if settings is None and (level is None or json_format is None):
        from dnd_chat.core.config import get_settings

        settings = get_settings()
    if level is None:
        level = settings.log_level if settings else "INFO"
    if json_format is None:
        json_format = settings.is_production if settings else False
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    renderer: list[Processor] = (
        [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        if json_format
        else [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    )

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )
    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values that every following event in this context will carry."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def turn_context(turn_id: str, **kwargs: Any) -> Iterator[None]:
    """Bind ``turn_id`` (and any extra values) for the duration of a turn.

    Values bound before entering are restored on exit, so nested or
    overlapping contexts do not leak into each other.
    """
    with structlog.contextvars.bound_contextvars(turn_id=turn_id, **kwargs):
        yield


__all__ = [
    "add_app_context",
    "redact_secrets",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "turn_context",
]
