"""In-memory implementation of the conversation repository."""

from __future__ import annotations

from typing import Any, Dict, List

from ..contracts import utc_now
from .models import Conversation, Message
from .repository import LAST_MESSAGE_PREVIEW, ConversationRepository


class InMemoryConversationRepository(ConversationRepository):
    """Store conversations in local memory.

    Useful for tests, development, or as the fallback when the durable store
    is unavailable. Data is not persisted across process restarts.
    """

    def __init__(self) -> None:
        self._conversations: Dict[str, Conversation] = {}
        self._messages: List[Message] = []

    # ------------------------------------------------------------------
    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        conversation = Conversation(user_id=user_id, title=title)
        self._conversations[conversation.id] = conversation
        return conversation

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        owned = [c for c in self._conversations.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    async def update_conversation(self, conversation_id: str, **changes: Any) -> None:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return
        for name, value in changes.items():
            setattr(conversation, name, value)
        conversation.updated_at = utc_now()

    async def delete_conversation(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)
        self._messages = [
            m for m in self._messages if m.conversation_id != conversation_id
        ]

    async def save_message(
        self, conversation_id: str, role: str, content: str
    ) -> Message:
        message = Message(conversation_id=conversation_id, role=role, content=content)
        self._messages.append(message)
        await self.update_conversation(
            conversation_id, last_message=content[:LAST_MESSAGE_PREVIEW]
        )
        return message

    async def list_messages(self, conversation_id: str) -> list[Message]:
        messages = [m for m in self._messages if m.conversation_id == conversation_id]
        return sorted(messages, key=lambda m: m.timestamp)
