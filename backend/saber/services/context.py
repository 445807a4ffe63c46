"""Selection of prior messages sent to the provider as conversation history."""

import logging
from typing import Any, Sequence, TypeVar

from saber.services.ai_settings import DEFAULT_CONTEXT_MEMORY, parse_int
from saber.services.llm.base import HistoryEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROVIDER_ROLES = {"user": "USER", "assistant": "CHATBOT"}


def window_context(messages: Sequence[T], context_memory: Any) -> list[T]:
    """Trailing `context_memory` messages, oldest first. Non-numeric limits mean the default."""
    limit = parse_int(context_memory, DEFAULT_CONTEXT_MEMORY, 0)
    recent = list(messages[-limit:]) if limit > 0 else []
    logger.debug(f"Using {len(recent)} context messages (limit: {limit})")
    return recent


def to_history(messages: Sequence[Any]) -> list[HistoryEntry] | None:
    """Map stored messages to provider roles. No messages means no history at all (None)."""
    history = [
        HistoryEntry(role=PROVIDER_ROLES.get(m.role, "USER"), message=m.content)
        for m in messages
    ]
    return history or None
