"""Conversation listing grouped by recency, and the full-history export bundle."""

from datetime import datetime, timedelta, timezone
from typing import Any

from saber.core.security import TokenClaims
from saber.models.conversation import ChatMessage, Conversation
from saber.services.repository import ConversationRepository

EXPORT_VERSION = "2.0.0"


def _local(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written in UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone()


def _iso(dt: datetime) -> str:
    return _local(dt).isoformat()


def conversation_json(conv: Conversation) -> dict[str, Any]:
    return {
        "id": str(conv.id),
        "title": conv.title,
        "created_at": _iso(conv.created_at),
        "updated_at": _iso(conv.updated_at),
    }


def message_json(msg: ChatMessage) -> dict[str, Any]:
    return {
        "id": msg.id,
        "role": msg.role,
        "content": msg.content,
        "settings": msg.settings,
        "created_at": _iso(msg.created_at),
    }


def bucket_history(
    conversations: list[Conversation], now: datetime | None = None
) -> dict[str, list[dict[str, Any]]]:
    """Group conversations into today/yesterday/week/older by the server's local midnight."""
    now = _local(now or datetime.now(timezone.utc))
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday = today - timedelta(days=1)
    week_ago = today - timedelta(days=7)

    history: dict[str, list[dict[str, Any]]] = {"today": [], "yesterday": [], "week": [], "older": []}
    for conv in conversations:
        updated = _local(conv.updated_at)
        if updated >= today:
            history["today"].append(conversation_json(conv))
        elif updated >= yesterday:
            history["yesterday"].append(conversation_json(conv))
        elif updated >= week_ago:
            history["week"].append(conversation_json(conv))
        else:
            history["older"].append(conversation_json(conv))
    return history


def export_filename(user_id: int, now: datetime) -> str:
    return f"saber_export_{user_id}_{now.strftime('%Y-%m-%d')}.json"


def build_export(repository: ConversationRepository, user: TokenClaims, now: datetime) -> dict[str, Any]:
    conversations = repository.list_conversations(user.id)
    if not conversations:
        return {
            "message": "No conversations to export.",
            "exportDate": now.isoformat(),
            "conversations": [],
        }

    full = []
    for conv in conversations:
        messages = repository.list_messages(user.id, conv.id)
        full.append({**conversation_json(conv), "messages": [message_json(m) for m in messages]})

    return {
        "exportDate": now.isoformat(),
        "version": EXPORT_VERSION,
        "user": {"id": user.id, "email": user.email, "name": user.name},
        "totalConversations": len(full),
        "conversations": full,
    }
