from saber.models.conversation import ChatMessage, Conversation
from saber.models.user import User

__all__ = ["ChatMessage", "Conversation", "User"]
