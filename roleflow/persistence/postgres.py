"""PostgreSQL implementation of the conversation repository."""

from __future__ import annotations

from typing import Any

import asyncpg

from ..contracts import utc_now
from .models import Conversation, Message
from .repository import LAST_MESSAGE_PREVIEW, ConversationRepository

_UPDATABLE_COLUMNS = {"title", "last_message"}


class PostgresConversationRepository(ConversationRepository):
    """Persist conversations and messages using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS conversations (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL,
                last_message TEXT
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS messages (
                seq SERIAL PRIMARY KEY,
                id TEXT NOT NULL UNIQUE,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                timestamp TIMESTAMPTZ NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        conversation = Conversation(user_id=user_id, title=title)
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO conversations (id, user_id, title, created_at, updated_at) VALUES ($1, $2, $3, $4, $5)",
                conversation.id,
                conversation.user_id,
                conversation.title,
                conversation.created_at,
                conversation.updated_at,
            )
        finally:
            await conn.close()
        return conversation

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT * FROM conversations WHERE user_id = $1 ORDER BY updated_at DESC",
                user_id,
            )
        finally:
            await conn.close()
        return [Conversation(**dict(r)) for r in rows]

    async def update_conversation(self, conversation_id: str, **changes: Any) -> None:
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update conversation fields: {sorted(unknown)}")
        names = list(changes)
        assignments = [f"{name} = ${i}" for i, name in enumerate(names, start=1)]
        assignments.append(f"updated_at = ${len(names) + 1}")
        conn = await self._connect()
        try:
            await conn.execute(
                f"UPDATE conversations SET {', '.join(assignments)} WHERE id = ${len(names) + 2}",
                *[changes[name] for name in names],
                utc_now(),
                conversation_id,
            )
        finally:
            await conn.close()

    async def delete_conversation(self, conversation_id: str) -> None:
        conn = await self._connect()
        try:
            async with conn.transaction():
                await conn.execute(
                    "DELETE FROM messages WHERE conversation_id = $1", conversation_id
                )
                await conn.execute(
                    "DELETE FROM conversations WHERE id = $1", conversation_id
                )
        finally:
            await conn.close()

    async def save_message(
        self, conversation_id: str, role: str, content: str
    ) -> Message:
        message = Message(conversation_id=conversation_id, role=role, content=content)
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO messages (id, conversation_id, role, content, timestamp) VALUES ($1, $2, $3, $4, $5)",
                message.id,
                message.conversation_id,
                message.role,
                message.content,
                message.timestamp,
            )
        finally:
            await conn.close()
        await self.update_conversation(
            conversation_id, last_message=content[:LAST_MESSAGE_PREVIEW]
        )
        return message

    async def list_messages(self, conversation_id: str) -> list[Message]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT id, conversation_id, role, content, timestamp FROM messages WHERE conversation_id = $1 ORDER BY timestamp, seq",
                conversation_id,
            )
        finally:
            await conn.close()
        return [Message(**dict(r)) for r in rows]
