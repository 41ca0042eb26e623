"""SQLite-backed knowledge document store.

Persists every :class:`KnowledgeDocument` (standalone, parent and chunk) to
a local SQLite database at ``data/knowledge.db`` via ``aiosqlite``, and
provides the lexical search primitive through an FTS5 virtual table over
title, content and tags ranked with ``bm25``.

The FTS table is maintained by hand in the same transaction as the
``documents`` row, so a record and its text index entry are written and
deleted together.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from asash.interfaces.document_store import IDocumentStore
from asash.models.knowledge import (
    DocumentCategory,
    DocumentStatus,
    KnowledgeDocument,
    ScoredDocument,
)
from asash.utils.errors import DocumentNotFoundError, InputValidationError, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/knowledge.db")

_MAX_PAGE_SIZE = 100

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id                  TEXT    PRIMARY KEY,
    title               TEXT    NOT NULL,
    content             TEXT    NOT NULL,
    category            TEXT    NOT NULL,
    office              TEXT,
    source              TEXT    NOT NULL,
    embedding           TEXT    NOT NULL DEFAULT '[]',
    tags                TEXT    NOT NULL DEFAULT '[]',
    is_public           INTEGER NOT NULL DEFAULT 1,
    status              TEXT    NOT NULL,
    view_count          INTEGER NOT NULL DEFAULT 0,
    uploaded_by         TEXT,
    is_chunk            INTEGER NOT NULL DEFAULT 0,
    parent_document_id  TEXT,
    chunk_index         INTEGER,
    chunk_count         INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT    NOT NULL
);
"""

_CREATE_FTS_SQL = """\
CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
    document_id UNINDEXED,
    title,
    content,
    tags,
    tokenize = 'unicode61 remove_diacritics 2'
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_parent ON documents(parent_document_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_category ON documents(category);",
    "CREATE INDEX IF NOT EXISTS idx_documents_kind ON documents(is_chunk, is_public);",
    "CREATE INDEX IF NOT EXISTS idx_documents_created ON documents(created_at);",
]

_COLUMNS = (
    "id, title, content, category, office, source, embedding, tags, is_public, "
    "status, view_count, uploaded_by, is_chunk, parent_document_id, chunk_index, "
    "chunk_count, created_at"
)

_INSERT_SQL = f"""\
INSERT INTO documents ({_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_FTS_SQL = """\
INSERT INTO documents_fts (document_id, title, content, tags) VALUES (?, ?, ?, ?);
"""

# Lexical fallback: public standalone records only.  Chunks and parents are
# deliberately left out, so a chunked document is reachable by vector
# search but not by this query.
_SEARCH_TEXT_SQL = f"""\
SELECT {", ".join("d." + c.strip() for c in _COLUMNS.split(","))},
       bm25(documents_fts) AS rank
FROM documents_fts
JOIN documents AS d ON d.id = documents_fts.document_id
WHERE documents_fts MATCH ?
  AND d.is_public = 1
  AND d.is_chunk = 0
  AND d.chunk_count = 0
ORDER BY rank ASC, d.id ASC
LIMIT ?;
"""

# Word characters only; everything else (quotes, operators, colons) would
# be FTS5 query syntax.
_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


def build_match_query(text: str) -> str | None:
    """Turn free text into an FTS5 query that ORs each quoted term.

    Returns ``None`` when *text* contains no searchable terms.
    """
    terms = sorted({t.lower() for t in _TOKEN_PATTERN.findall(text)})
    if not terms:
        return None
    return " OR ".join(f'"{term}"' for term in terms)


class SQLiteDocumentStore(IDocumentStore):
    """SQLite + FTS5 persistence for knowledge documents."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents table, FTS index and indices if missing."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.execute(_CREATE_FTS_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("knowledge_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, document: KnowledgeDocument) -> KnowledgeDocument:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_SQL, self._document_to_row(document))
                await db.execute(
                    _INSERT_FTS_SQL,
                    (
                        document.id,
                        document.title,
                        document.content,
                        " ".join(document.tags),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Failed to create document '{document.title}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug(
            "document_created",
            document_id=document.id,
            is_chunk=document.is_chunk,
            chunk_count=document.chunk_count,
            has_embedding=document.has_embedding,
        )
        return document

    async def update_status(self, document_id: str, status: DocumentStatus) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "UPDATE documents SET status = ? WHERE id = ?",
                    (status.value, document_id),
                )
                updated = cursor.rowcount
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Failed to update status of {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if updated == 0:
            raise DocumentNotFoundError(message=f"Document {document_id} not found")

    async def increment_view_count(self, document_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE documents SET view_count = view_count + 1 WHERE id = ?",
                (document_id,),
            )
            await db.commit()
            cursor = await db.execute(
                "SELECT view_count FROM documents WHERE id = ?", (document_id,)
            )
            row = await cursor.fetchone()
        if row is None:
            raise DocumentNotFoundError(message=f"Document {document_id} not found")
        return int(row[0])

    async def delete_cascade(self, document_id: str) -> list[str]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "SELECT chunk_count FROM documents WHERE id = ?", (document_id,)
                )
                row = await cursor.fetchone()
                if row is None:
                    raise DocumentNotFoundError(
                        message=f"Document {document_id} not found"
                    )

                cursor = await db.execute(
                    "SELECT id FROM documents WHERE parent_document_id = ? ORDER BY chunk_index",
                    (document_id,),
                )
                chunk_ids = [r[0] for r in await cursor.fetchall()]

                deleted = [*chunk_ids, document_id]
                placeholders = ", ".join("?" for _ in deleted)
                await db.execute(
                    f"DELETE FROM documents_fts WHERE document_id IN ({placeholders})",
                    deleted,
                )
                await db.execute(
                    "DELETE FROM documents WHERE parent_document_id = ?", (document_id,)
                )
                await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Failed to delete document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "document_deleted",
            document_id=document_id,
            chunks_deleted=len(chunk_ids),
        )
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, document_id: str) -> KnowledgeDocument | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = ?", (document_id,)
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row is not None else None

    async def get_many(self, document_ids: list[str]) -> dict[str, KnowledgeDocument]:
        if not document_ids:
            return {}
        placeholders = ", ".join("?" for _ in document_ids)
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id IN ({placeholders})",
                list(document_ids),
            )
            rows = await cursor.fetchall()
        return {row["id"]: self._row_to_document(row) for row in rows}

    async def search_text(self, query: str, k: int) -> list[ScoredDocument]:
        match = build_match_query(query)
        if match is None or k <= 0:
            return []

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SEARCH_TEXT_SQL, (match, k))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Full-text search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        # bm25() is lower-is-better; negate so callers see higher-is-better.
        return [
            ScoredDocument(
                document=self._row_to_document(row),
                text_score=-float(row["rank"]),
            )
            for row in rows
        ]

    async def list_documents(
        self,
        category: DocumentCategory | None = None,
        search: str | None = None,
        include_chunks: bool = False,
        public_only: bool = True,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[KnowledgeDocument], int]:
        if page < 1:
            raise InputValidationError(message="page must be at least 1")
        if not 1 <= limit <= _MAX_PAGE_SIZE:
            raise InputValidationError(
                message=f"limit must be between 1 and {_MAX_PAGE_SIZE}"
            )

        clauses: list[str] = []
        params: list[Any] = []
        if public_only:
            clauses.append("is_public = 1")
        if not include_chunks:
            clauses.append("is_chunk = 0")
        if category is not None:
            clauses.append("category = ?")
            params.append(category.value)
        if search:
            match = build_match_query(search)
            if match is None:
                return [], 0
            clauses.append(
                "id IN (SELECT document_id FROM documents_fts WHERE documents_fts MATCH ?)"
            )
            params.append(match)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(f"SELECT COUNT(*) FROM documents {where}", params)
            total = int((await cursor.fetchone())[0])
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM documents {where} "
                "ORDER BY created_at DESC, id ASC LIMIT ? OFFSET ?",
                [*params, limit, (page - 1) * limit],
            )
            rows = await cursor.fetchall()

        return [self._row_to_document(r) for r in rows], total

    async def count(self) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM documents")
            row = await cursor.fetchone()
        return int(row[0])

    def get_provider_name(self) -> str:
        return "sqlite_documents"

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _document_to_row(document: KnowledgeDocument) -> tuple[Any, ...]:
        return (
            document.id,
            document.title,
            document.content,
            document.category.value,
            document.office,
            document.source.value,
            json.dumps(document.embedding),
            json.dumps(document.tags),
            int(document.is_public),
            document.status.value,
            document.view_count,
            document.uploaded_by,
            int(document.is_chunk),
            document.parent_document_id,
            document.chunk_index,
            document.chunk_count,
            document.created_at.isoformat(),
        )

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> KnowledgeDocument:
        return KnowledgeDocument(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            category=row["category"],
            office=row["office"],
            source=row["source"],
            embedding=json.loads(row["embedding"]),
            tags=json.loads(row["tags"]),
            is_public=bool(row["is_public"]),
            status=row["status"],
            view_count=row["view_count"],
            uploaded_by=row["uploaded_by"],
            is_chunk=bool(row["is_chunk"]),
            parent_document_id=row["parent_document_id"],
            chunk_index=row["chunk_index"],
            chunk_count=row["chunk_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
