"""REST API for conversation history management."""

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from saber.api.deps import get_current_user, get_repository
from saber.core.config import settings
from saber.core.security import TokenClaims
from saber.services.history import (
    bucket_history,
    build_export,
    conversation_json,
    export_filename,
    message_json,
)
from saber.services.repository import ConversationRepository

router = APIRouter()
logger = logging.getLogger(__name__)


class TitleUpdate(BaseModel):
    title: str

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("The title cannot be empty.")
        return v


@router.get("/history")
async def history(
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
):
    return bucket_history(repository.list_conversations(user.id))


@router.get("/conversation/{conversation_id}")
async def get_conversation(
    conversation_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
):
    messages = repository.list_messages(user.id, conversation_id)
    return {
        "conversationId": str(conversation_id),
        "messages": [message_json(m) for m in messages],
    }


@router.post("/new-conversation", status_code=201)
async def new_conversation(
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
):
    conv = repository.create_conversation(user.id, settings.default_title, title_claimed=False)
    return conversation_json(conv)


@router.put("/conversation/{conversation_id}/title")
async def rename_conversation(
    conversation_id: uuid.UUID,
    body: TitleUpdate,
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
):
    repository.update_title(user.id, conversation_id, body.title)
    return {"success": True, "title": body.title}


@router.delete("/conversation/{conversation_id}")
async def delete_conversation(
    conversation_id: uuid.UUID,
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
):
    repository.delete_conversation(user.id, conversation_id)
    return {"message": "Conversation deleted."}


@router.delete("/clear-all")
async def clear_all(
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
):
    deleted = repository.clear_conversations(user.id)
    return {"success": True, "deleted": deleted, "message": "All your conversations were cleared."}


@router.get("/export")
async def export(
    user: TokenClaims = Depends(get_current_user),
    repository: ConversationRepository = Depends(get_repository),
):
    now = datetime.now(timezone.utc)
    return JSONResponse(
        build_export(repository, user, now),
        headers={"Content-Disposition": f"attachment; filename={export_filename(user.id, now)}"},
    )


@router.get("/stats")
async def stats(repository: ConversationRepository = Depends(get_repository)):
    return repository.stats()
