"""Conversation ID logging context for tracing turns across modules.

Provides a conversation-aware logger that attaches the current conversation
ID to every log record, making it easy to follow a single customer's turn
through the orchestrator, the LLM client, and the function handlers.

Usage:
    from src.logging_context import get_conversation_logger, set_conversation_id

    set_conversation_id("wa-5215512345678")
    logger = get_conversation_logger(__name__)
    logger.info("Processing message")  # record.conversation_id == "wa-5215512345678"
"""

import logging
from contextvars import ContextVar
from typing import Optional

_conversation_id: ContextVar[str] = ContextVar("conversation_id", default="NO_CONVERSATION")


def set_conversation_id(conversation_id: str) -> None:
    """Set the conversation ID for the current async context."""
    _conversation_id.set(conversation_id)


def get_conversation_id() -> str:
    """Retrieve the current conversation ID."""
    return _conversation_id.get()


class ConversationIdFilter(logging.Filter):
    """Injects conversation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.conversation_id = _conversation_id.get()  # type: ignore[attr-defined]
        return True


def get_conversation_logger(name: str) -> logging.Logger:
    """Return a logger with the ConversationIdFilter attached.

    The filter adds ``conversation_id`` to each record so formatters can
    include ``%(conversation_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, ConversationIdFilter) for f in logger.filters):
        logger.addFilter(ConversationIdFilter())
    return logger


def add_conversation_id_to_handlers(logger: Optional[logging.Logger] = None) -> None:
    """Attach a ConversationIdFilter to every handler of ``logger`` (root by default).

    Handler-level filters also see records from loggers that were never set up
    with ``get_conversation_logger`` (httpx, asyncio), so a format string
    using ``%(conversation_id)s`` works for all of them.
    """
    target = logger if logger is not None else logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, ConversationIdFilter) for f in handler.filters):
            handler.addFilter(ConversationIdFilter())
