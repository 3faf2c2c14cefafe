"""Persistence layer for roleflow conversations."""

from __future__ import annotations

import logging
import os
from typing import Optional

from ..config import RoleflowConfig, load_config
from .fallback import FallbackConversationRepository
from .inmemory import InMemoryConversationRepository
from .models import Conversation, Message
from .repository import ConversationRepository
from .sqlite import SQLiteConversationRepository

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresConversationRepository
except ImportError:  # pragma: no cover - optional dependency
    PostgresConversationRepository = None  # type: ignore

logger = logging.getLogger(__name__)

_repository_instance: ConversationRepository | None = None


def _durable_repository(database_url: str) -> ConversationRepository:
    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        return SQLiteConversationRepository(path)
    if database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        if PostgresConversationRepository is None:
            raise RuntimeError("Postgres support not available")
        return PostgresConversationRepository(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_repository(
    database_url: Optional[str] = None, config: Optional[RoleflowConfig] = None
) -> ConversationRepository:
    """Factory function to obtain a conversation repository.

    The backend is selected from ``database_url``, the
    ``ROLEFLOW_DATABASE_URL`` or ``DATABASE_URL`` environment variables, or
    loaded configuration. Durable backends are wrapped so that failing calls
    fall back to memory; when nothing is configured, or the durable backend
    cannot be opened, an in-memory repository is returned.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("ROLEFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or getattr(config, "database_url", None)
    )

    if not database_url:
        _repository_instance = InMemoryConversationRepository()
        return _repository_instance

    try:
        primary = _durable_repository(database_url)
    except ValueError:
        raise
    except Exception as e:
        logger.warning(f"Durable store unavailable, using memory: {e}")
        _repository_instance = InMemoryConversationRepository()
        return _repository_instance

    _repository_instance = FallbackConversationRepository(primary)
    return _repository_instance


__all__ = [
    "Conversation",
    "Message",
    "ConversationRepository",
    "FallbackConversationRepository",
    "InMemoryConversationRepository",
    "SQLiteConversationRepository",
    "PostgresConversationRepository",
    "get_repository",
]
