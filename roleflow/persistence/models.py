"""Data models for persisted conversations."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from ..contracts import ContractModel, new_id, utc_now


class Conversation(ContractModel):
    """A chat thread owned by one user."""

    id: str = Field(default_factory=new_id)
    user_id: str
    title: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_message: Optional[str] = None


class Message(ContractModel):
    """One turn in a conversation."""

    id: str = Field(default_factory=new_id)
    conversation_id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
