"""Repository abstraction for conversation persistence."""

from __future__ import annotations

from typing import Any, Protocol

from .models import Conversation, Message

LAST_MESSAGE_PREVIEW = 100


class ConversationRepository(Protocol):
    """Protocol for conversation and message persistence backends."""

    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        """Persist a new conversation."""

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Return the user's conversations, most recently updated first."""

    async def update_conversation(self, conversation_id: str, **changes: Any) -> None:
        """Apply field changes to a conversation and bump ``updated_at``."""

    async def delete_conversation(self, conversation_id: str) -> None:
        """Remove a conversation and all of its messages."""

    async def save_message(
        self, conversation_id: str, role: str, content: str
    ) -> Message:
        """Append a message and refresh the conversation preview."""

    async def list_messages(self, conversation_id: str) -> list[Message]:
        """Return the conversation's messages, oldest first."""
