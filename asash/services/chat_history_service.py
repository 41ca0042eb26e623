"""Chat history: explicit saves, listing and owner-checked access."""

from __future__ import annotations

import structlog

from asash.interfaces.chat_session_store import IChatSessionStore
from asash.models.chat import ChatSession, ChatTurn
from asash.utils.errors import (
    InputValidationError,
    SessionAccessDeniedError,
    SessionNotFoundError,
)
from asash.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


class ChatHistoryService:
    """A user's saved chat sessions.

    A session is visible only to the user who created it; any other user
    gets :class:`SessionAccessDeniedError` rather than the session.
    """

    def __init__(self, chat_store: IChatSessionStore, history_limit: int = 100) -> None:
        self._store = chat_store
        self._history_limit = history_limit

    async def save(
        self,
        user_id: str,
        messages: list[ChatTurn],
        is_resolved: bool = True,
        response_time: float = 0.0,
    ) -> ChatSession:
        if not user_id:
            raise InputValidationError(message="A user id is required")
        if not messages:
            raise InputValidationError(message="Messages are required")
        session = ChatSession(
            user_id=user_id,
            messages=messages,
            is_resolved=is_resolved,
            response_time=response_time,
        )
        await self._store.save(session)
        logger.info("chat_session_created", session_id=session.id, turns=len(messages))
        return session

    async def list_for_user(self, user_id: str) -> list[ChatSession]:
        """Return the user's sessions, newest first, capped at the history limit."""
        return await self._store.list_for_user(user_id, self._history_limit)

    async def get(self, session_id: str, user_id: str) -> ChatSession:
        session = await self._store.get(session_id)
        if session is None:
            raise SessionNotFoundError(message=f"Chat session {session_id} not found")
        if session.user_id != user_id:
            logger.warning("chat_session_access_denied", session_id=session_id)
            raise SessionAccessDeniedError()
        return session

    async def delete(self, session_id: str, user_id: str) -> None:
        await self.get(session_id, user_id)
        await self._store.delete(session_id)
        logger.info("chat_session_deleted", session_id=session_id)
