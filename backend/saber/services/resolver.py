"""Decides which conversation a chat turn belongs to and whether it needs a title."""

import logging
import uuid
from dataclasses import dataclass

from saber.services.ai_settings import AiSettings
from saber.services.llm.base import BaseLLMProvider
from saber.services.repository import ConversationRepository
from saber.services.titles import generate_title

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    conversation_id: uuid.UUID
    title: str
    is_first_message: bool
    # True when this turn wrote the title and must give it back if the turn fails
    claimed: bool = False


class ConversationResolver:
    def __init__(self, repository: ConversationRepository, provider: BaseLLMProvider):
        self.repository = repository
        self.provider = provider

    async def resolve(
        self,
        user_id: int,
        conversation_id: uuid.UUID | None,
        first_message: str,
        ai_settings: AiSettings,
    ) -> Resolution:
        """Reuse, title or create the conversation for this turn.

        Raises NotFound for conversations the user does not own, before any
        provider call is made.
        """
        if conversation_id is None:
            title = await generate_title(first_message, ai_settings, self.provider)
            conv = self.repository.create_conversation(user_id, title)
            return Resolution(conv.id, conv.title, is_first_message=True, claimed=True)

        messages = self.repository.list_messages(user_id, conversation_id)
        if not messages:
            title = await generate_title(first_message, ai_settings, self.provider)
            claimed = self.repository.claim_title(user_id, conversation_id, title)
            if not claimed:
                # A concurrent first message titled it already; keep that title
                title = self.repository.get_conversation(user_id, conversation_id).title
                logger.info(f"Conversation {conversation_id} was titled concurrently, keeping {title!r}")
            return Resolution(conversation_id, title, is_first_message=True, claimed=claimed)

        conv = self.repository.get_conversation(user_id, conversation_id)
        return Resolution(conversation_id, conv.title, is_first_message=False)
