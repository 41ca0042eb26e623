"""SQLite-backed chat session store.

Persists :class:`ChatSession` rows to ``data/chat_sessions.db`` via
``aiosqlite``.  The ordered turn list is stored as one JSON array per
session; sessions are write-once, so there is no update statement.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from asash.interfaces.chat_session_store import IChatSessionStore
from asash.models.chat import ChatSession, ChatTurn
from asash.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/chat_sessions.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS chat_sessions (
    id             TEXT    PRIMARY KEY,
    user_id        TEXT    NOT NULL,
    messages_json  TEXT    NOT NULL,
    is_resolved    INTEGER NOT NULL,
    response_time  REAL    NOT NULL DEFAULT 0,
    created_at     TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chat_sessions_user "
    "ON chat_sessions(user_id, created_at);",
]

_INSERT_SQL = """\
INSERT INTO chat_sessions (id, user_id, messages_json, is_resolved, response_time, created_at)
VALUES (?, ?, ?, ?, ?, ?);
"""

_SELECT_COLUMNS = "id, user_id, messages_json, is_resolved, response_time, created_at"


class SQLiteChatSessionStore(IChatSessionStore):
    """SQLite persistence for chat sessions."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the chat_sessions table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("chat_db_initialized", path=str(self._db_path))

    async def save(self, session: ChatSession) -> ChatSession:
        messages_json = json.dumps(
            [turn.model_dump(mode="json") for turn in session.messages]
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _INSERT_SQL,
                    (
                        session.id,
                        session.user_id,
                        messages_json,
                        int(session.is_resolved),
                        session.response_time,
                        session.created_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Failed to save chat session: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "chat_session_saved",
            session_id=session.id,
            turns=len(session.messages),
        )
        return session

    async def get(self, session_id: str) -> ChatSession | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM chat_sessions WHERE id = ?",
                (session_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_session(row) if row is not None else None

    async def list_for_user(self, user_id: str, limit: int) -> list[ChatSession]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM chat_sessions WHERE user_id = ? "
                "ORDER BY created_at DESC, id ASC LIMIT ?",
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        return [self._row_to_session(r) for r in rows]

    async def delete(self, session_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "DELETE FROM chat_sessions WHERE id = ?", (session_id,)
            )
            deleted = cursor.rowcount
            await db.commit()
        return deleted > 0

    def get_provider_name(self) -> str:
        return "sqlite_chat_sessions"

    @staticmethod
    def _row_to_session(row: aiosqlite.Row) -> ChatSession:
        return ChatSession(
            id=row["id"],
            user_id=row["user_id"],
            messages=[ChatTurn.model_validate(m) for m in json.loads(row["messages_json"])],
            is_resolved=bool(row["is_resolved"]),
            response_time=row["response_time"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
