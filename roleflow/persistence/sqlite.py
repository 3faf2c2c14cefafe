"""SQLite implementation of the conversation repository."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..contracts import utc_now
from .models import Conversation, Message
from .repository import LAST_MESSAGE_PREVIEW, ConversationRepository

_UPDATABLE_COLUMNS = {"title", "last_message"}


class SQLiteConversationRepository(ConversationRepository):
    """Persist conversations and messages using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS conversations (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                last_message TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS messages (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                timestamp TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    @staticmethod
    def _to_conversation(row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            last_message=row["last_message"],
        )

    @staticmethod
    def _to_message(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=row["role"],
            content=row["content"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    # ------------------------------------------------------------------
    # Repository API
    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        conversation = Conversation(user_id=user_id, title=title)
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO conversations (id, user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            conversation.id,
            conversation.user_id,
            conversation.title,
            conversation.created_at.isoformat(),
            conversation.updated_at.isoformat(),
        )
        return conversation

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT * FROM conversations WHERE user_id = ? ORDER BY updated_at DESC",
            user_id,
        )
        return [self._to_conversation(r) for r in rows]

    async def update_conversation(self, conversation_id: str, **changes: Any) -> None:
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update conversation fields: {sorted(unknown)}")
        assignments = [f"{name} = ?" for name in changes] + ["updated_at = ?"]
        await asyncio.to_thread(
            self._execute,
            f"UPDATE conversations SET {', '.join(assignments)} WHERE id = ?",
            *changes.values(),
            utc_now().isoformat(),
            conversation_id,
        )

    async def delete_conversation(self, conversation_id: str) -> None:
        await asyncio.to_thread(
            self._execute,
            "DELETE FROM messages WHERE conversation_id = ?",
            conversation_id,
        )
        await asyncio.to_thread(
            self._execute,
            "DELETE FROM conversations WHERE id = ?",
            conversation_id,
        )

    async def save_message(
        self, conversation_id: str, role: str, content: str
    ) -> Message:
        message = Message(conversation_id=conversation_id, role=role, content=content)
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO messages (id, conversation_id, role, content, timestamp) VALUES (?, ?, ?, ?, ?)",
            message.id,
            message.conversation_id,
            message.role,
            message.content,
            message.timestamp.isoformat(),
        )
        await self.update_conversation(
            conversation_id, last_message=content[:LAST_MESSAGE_PREVIEW]
        )
        return message

    async def list_messages(self, conversation_id: str) -> list[Message]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT * FROM messages WHERE conversation_id = ? ORDER BY timestamp, seq",
            conversation_id,
        )
        return [self._to_message(r) for r in rows]
