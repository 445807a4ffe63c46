"""Conversation and message persistence, always scoped to the owning user."""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from saber.core.config import settings
from saber.core.errors import Conflict, NotFound, StorageError
from saber.models.conversation import ChatMessage, Conversation
from saber.models.user import User

logger = logging.getLogger(__name__)


class ConversationRepository:
    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _storage(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Storage failure while trying to {action}: {e}")
            raise StorageError() from e

    def _owned(self, user_id: int, conversation_id: uuid.UUID) -> Conversation:
        conv = self.session.exec(
            select(Conversation).where(
                Conversation.id == conversation_id,
                Conversation.user_id == user_id,
            )
        ).first()
        if conv is None:
            logger.debug(f"Conversation {conversation_id} not found for user {user_id}")
            raise NotFound()
        return conv

    def create_conversation(
        self, user_id: int, title: str | None = None, title_claimed: bool = True
    ) -> Conversation:
        with self._storage("create conversation"):
            conv = Conversation(
                user_id=user_id,
                title=title or settings.default_title,
                title_claimed=title_claimed,
            )
            self.session.add(conv)
            self.session.commit()
            self.session.refresh(conv)
        logger.info(f"Created conversation {conv.id} for user {user_id}")
        return conv

    def get_conversation(self, user_id: int, conversation_id: uuid.UUID) -> Conversation:
        with self._storage("load conversation"):
            return self._owned(user_id, conversation_id)

    def list_conversations(self, user_id: int) -> list[Conversation]:
        with self._storage("list conversations"):
            return list(
                self.session.exec(
                    select(Conversation)
                    .where(Conversation.user_id == user_id)
                    .order_by(Conversation.updated_at.desc())  # type: ignore
                ).all()
            )

    def list_messages(self, user_id: int, conversation_id: uuid.UUID) -> list[ChatMessage]:
        """Messages in creation order. Raises NotFound unless the user owns the conversation."""
        with self._storage("load messages"):
            self._owned(user_id, conversation_id)
            return list(
                self.session.exec(
                    select(ChatMessage)
                    .where(ChatMessage.conversation_id == conversation_id)
                    .order_by(ChatMessage.created_at, ChatMessage.id)  # type: ignore
                ).all()
            )

    def update_title(self, user_id: int, conversation_id: uuid.UUID, title: str) -> None:
        with self._storage("rename conversation"):
            result = self.session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id, Conversation.user_id == user_id)
                .values(title=title, updated_at=datetime.now(timezone.utc))
            )
            self.session.commit()
        if result.rowcount == 0:
            raise NotFound()

    def claim_title(self, user_id: int, conversation_id: uuid.UUID, title: str) -> bool:
        """Set the title only if no first message has titled the conversation yet.

        Returns False when another request got there first.
        """
        with self._storage("title conversation"):
            result = self.session.execute(
                update(Conversation)
                .where(
                    Conversation.id == conversation_id,
                    Conversation.user_id == user_id,
                    Conversation.title_claimed == False,  # noqa: E712
                )
                .values(title=title, title_claimed=True, updated_at=datetime.now(timezone.utc))
            )
            self.session.commit()
        return result.rowcount > 0

    def release_title(self, user_id: int, conversation_id: uuid.UUID) -> None:
        """Let the next first message retitle a conversation that still has no messages."""
        with self._storage("release conversation title"):
            has_messages = (
                select(ChatMessage.id)
                .where(ChatMessage.conversation_id == conversation_id)
                .exists()
            )
            self.session.execute(
                update(Conversation)
                .where(
                    Conversation.id == conversation_id,
                    Conversation.user_id == user_id,
                    ~has_messages,
                )
                .values(title_claimed=False)
            )
            self.session.commit()

    def append_exchange(
        self,
        conversation_id: uuid.UUID,
        user_text: str,
        assistant_text: str,
        ai_settings: dict[str, Any] | None = None,
    ) -> tuple[ChatMessage, ChatMessage]:
        """Persist a user message and the assistant reply as one unit, user first."""
        with self._storage("save messages"):
            user_msg = ChatMessage(conversation_id=conversation_id, role="user", content=user_text)
            self.session.add(user_msg)
            self.session.flush()

            assistant_msg = ChatMessage(
                conversation_id=conversation_id,
                role="assistant",
                content=assistant_text,
                settings=ai_settings,
            )
            self.session.add(assistant_msg)
            self.session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values(updated_at=datetime.now(timezone.utc))
            )
            self.session.commit()
            self.session.refresh(user_msg)
            self.session.refresh(assistant_msg)
        return user_msg, assistant_msg

    def delete_conversation(self, user_id: int, conversation_id: uuid.UUID) -> None:
        with self._storage("delete conversation"):
            conv = self._owned(user_id, conversation_id)
            self.session.delete(conv)
            self.session.commit()
        logger.debug(f"Deleted conversation {conversation_id}")

    def clear_conversations(self, user_id: int) -> int:
        with self._storage("clear conversations"):
            ids = select(Conversation.id).where(Conversation.user_id == user_id)
            self.session.execute(delete(ChatMessage).where(ChatMessage.conversation_id.in_(ids)))  # type: ignore
            result = self.session.execute(delete(Conversation).where(Conversation.user_id == user_id))
            self.session.commit()
        logger.info(f"Cleared {result.rowcount} conversations for user {user_id}")
        return result.rowcount

    def stats(self) -> dict[str, int]:
        with self._storage("compute stats"):
            return {
                "totalUsers": self.session.exec(select(func.count()).select_from(User)).one(),
                "totalConversations": self.session.exec(
                    select(func.count()).select_from(Conversation)
                ).one(),
                "totalMessages": self.session.exec(
                    select(func.count()).select_from(ChatMessage)
                ).one(),
            }


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_email(self, email: str) -> User | None:
        try:
            return self.session.exec(select(User).where(User.email == email)).first()
        except SQLAlchemyError as e:
            logger.error(f"Storage failure while loading user {email}: {e}")
            raise StorageError() from e

    def create(self, name: str, email: str, password_hash: str) -> User:
        try:
            user = User(name=name, email=email, password_hash=password_hash)
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
            return user
        except IntegrityError as e:
            self.session.rollback()
            raise Conflict("This email is already registered.") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Storage failure while creating user {email}: {e}")
            raise StorageError() from e
