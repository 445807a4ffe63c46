import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from saber.api.deps import get_current_user, get_repository
from saber.core.security import TokenClaims
from saber.services.llm import get_llm_provider
from saber.services.llm.base import BaseLLMProvider
from saber.services.orchestrator import TurnOrchestrator
from saber.services.repository import ConversationRepository

router = APIRouter()


class ChatRequest(BaseModel):
    message: str = ""
    conversation_id: uuid.UUID | None = Field(default=None, alias="conversationId")
    settings: Any = None


@router.post("/chat")
async def chat(
    body: ChatRequest,
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
    provider: BaseLLMProvider = Depends(get_llm_provider),
):
    orchestrator = TurnOrchestrator(repository, provider)
    result = await orchestrator.handle_turn(
        user.id, body.message, body.conversation_id, body.settings
    )
    return result.to_json()
