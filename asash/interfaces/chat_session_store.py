"""Abstract base class for chat-session persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod

from asash.models.chat import ChatSession


class IChatSessionStore(ABC):
    """Persistence contract for :class:`~asash.models.chat.ChatSession`.

    Ownership checks are the caller's job (see ``ChatHistoryService``);
    the store only reads and writes rows.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    @abstractmethod
    async def save(self, session: ChatSession) -> ChatSession:
        """Persist a new session."""

    @abstractmethod
    async def get(self, session_id: str) -> ChatSession | None:
        """Return the session with *session_id*, or ``None``."""

    @abstractmethod
    async def list_for_user(self, user_id: str, limit: int) -> list[ChatSession]:
        """Return the user's sessions, newest first, at most *limit*."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a session; return ``False`` if it did not exist."""
