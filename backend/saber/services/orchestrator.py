"""One chat turn: resolve the conversation, build context, generate, persist."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from saber.core.config import settings
from saber.core.errors import GenerationError, StorageError, ValidationError
from saber.services.ai_settings import DEFAULT_PERSONALITY, AiSettings
from saber.services.context import to_history, window_context
from saber.services.llm.base import BaseLLMProvider
from saber.services.repository import ConversationRepository
from saber.services.resolver import ConversationResolver

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    response_text: str
    conversation_id: uuid.UUID
    title: str
    is_first_message: bool
    applied_settings: AiSettings

    def to_json(self) -> dict[str, Any]:
        return {
            "response": self.response_text,
            "conversationId": str(self.conversation_id),
            "title": self.title,
            "isFirstMessage": self.is_first_message,
            "appliedSettings": self.applied_settings.to_json(),
        }


def build_system_prompt(personality: str) -> str:
    prompts = settings.personality_prompts
    fragment = prompts.get(personality) or prompts.get(DEFAULT_PERSONALITY, "")
    return (
        f"{settings.core_directive}\n\n"
        f"PERSONALITY: {fragment}\n\n"
        "Always keep the educational focus and adapt your answer to the learner's level."
    )


class TurnOrchestrator:
    def __init__(self, repository: ConversationRepository, provider: BaseLLMProvider):
        self.repository = repository
        self.provider = provider
        self.resolver = ConversationResolver(repository, provider)

    async def handle_turn(
        self,
        user_id: int,
        message_text: Any,
        conversation_id: uuid.UUID | None = None,
        raw_settings: Any = None,
    ) -> TurnResult:
        if not isinstance(message_text, str) or not message_text.strip():
            raise ValidationError("The message cannot be empty.")
        message = message_text.strip()

        applied = AiSettings.merge(raw_settings)
        resolution = await self.resolver.resolve(user_id, conversation_id, message, applied)

        try:
            reply = await self._exchange(user_id, message, resolution.conversation_id, applied)
        except (GenerationError, StorageError):
            if resolution.claimed:
                self._release_title(user_id, resolution.conversation_id)
            raise
        logger.debug(
            f"Turn stored in conversation {resolution.conversation_id} "
            f"(first message: {resolution.is_first_message})"
        )
        return TurnResult(
            response_text=reply,
            conversation_id=resolution.conversation_id,
            title=resolution.title,
            is_first_message=resolution.is_first_message,
            applied_settings=applied,
        )

    async def _exchange(
        self, user_id: int, message: str, conversation_id: uuid.UUID, applied: AiSettings
    ) -> str:
        all_messages = self.repository.list_messages(user_id, conversation_id)
        history = to_history(window_context(all_messages, applied.context_memory))

        reply = await self.provider.chat(
            message,
            history=history,
            system_prompt=build_system_prompt(applied.personality),
            temperature=applied.temperature,
            max_tokens=applied.max_tokens,
        )

        self.repository.append_exchange(conversation_id, message, reply, applied.to_json())
        return reply

    def _release_title(self, user_id: int, conversation_id: uuid.UUID) -> None:
        try:
            self.repository.release_title(user_id, conversation_id)
        except StorageError:
            # The turn's own error is what the caller sees
            logger.error(f"Could not release title of conversation {conversation_id}")
