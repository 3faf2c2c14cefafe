"""Repository wrapper that degrades to transient storage on failure."""

from __future__ import annotations

import logging
from typing import Any

from .inmemory import InMemoryConversationRepository
from .models import Conversation, Message
from .repository import ConversationRepository

logger = logging.getLogger(__name__)


class FallbackConversationRepository(ConversationRepository):
    """Route every call to ``primary`` and fall back when it raises.

    The fallback is an in-memory store unless another repository is given,
    so the chat keeps working while the durable store is unavailable.
    """

    def __init__(
        self,
        primary: ConversationRepository,
        fallback: ConversationRepository | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback or InMemoryConversationRepository()

    async def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return await getattr(self.primary, method)(*args, **kwargs)
        except Exception as e:
            logger.error(
                f"{method} failed on {type(self.primary).__name__}, using memory: {e}"
            )
            return await getattr(self.fallback, method)(*args, **kwargs)

    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        return await self._call("create_conversation", user_id, title)

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        return await self._call("list_conversations", user_id)

    async def update_conversation(self, conversation_id: str, **changes: Any) -> None:
        await self._call("update_conversation", conversation_id, **changes)

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._call("delete_conversation", conversation_id)

    async def save_message(
        self, conversation_id: str, role: str, content: str
    ) -> Message:
        return await self._call("save_message", conversation_id, role, content)

    async def list_messages(self, conversation_id: str) -> list[Message]:
        return await self._call("list_messages", conversation_id)
