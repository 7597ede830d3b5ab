"""Chat conversations over the user's health data."""

from healthscope.chat.models import ChatMessage, Conversation, MessageRole
from healthscope.chat.session import ChatSessionManager, SessionState

__all__ = [
    "ChatMessage",
    "ChatSessionManager",
    "Conversation",
    "MessageRole",
    "SessionState",
]
