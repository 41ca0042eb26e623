"""Query pipeline: answers one student question from the knowledge base.

Data flow for :meth:`QAService.ask`::

    question
      -> validate (empty / too long -> InputValidationError, no calls made)
      -> embed question
      -> vector search top-k          (only if the embedding succeeded)
      -> lexical search top-k         (only if there is no embedding or the
                                       vector search returned nothing)
      -> assemble context
      -> generate answer              (timed)
      -> save chat session            (best effort, failures only logged)
      -> QueryAnswer(answer, sources, ...)

The vector -> lexical fallback is strictly sequential: a lexical query is
never issued when the vector search produced a result.  Generation errors
propagate; :class:`GenerationAuthError` stays distinguishable from other
:class:`GenerationError` failures so the API can report a bad key
differently from an outage.
"""

from __future__ import annotations

import time

import structlog

from asash.config.prompts import SYSTEM_PROMPT
from asash.interfaces.chat_session_store import IChatSessionStore
from asash.interfaces.embedding_provider import IEmbeddingProvider
from asash.interfaces.generation_provider import IGenerationProvider
from asash.models.chat import (
    ChatRole,
    ChatSession,
    ChatTurn,
    QueryAnswer,
    RetrievalMode,
    SourceCitation,
)
from asash.models.knowledge import ScoredDocument
from asash.services.context_assembler import ContextAssembler
from asash.services.retrieval_service import DEFAULT_TOP_K, RetrievalEngine
from asash.utils.errors import InputValidationError
from asash.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

# Leading words of the prompt's "not found" phrase.
UNRESOLVED_MARKER = "I couldn't find official information"


def is_resolved(answer: str) -> bool:
    """Heuristic: an answer is resolved unless it carries the not-found phrase."""
    return UNRESOLVED_MARKER not in answer


class QAService:
    """Orchestrates embedding, retrieval, context assembly and generation.

    Parameters
    ----------
    embedding_provider:
        Embeds the question; failures route straight to lexical search.
    retrieval_engine:
        Vector and lexical search.
    context_assembler:
        Formats the hits into the prompt context.
    generation_provider:
        Writes the answer.
    chat_store:
        Where answered exchanges are saved, or ``None`` to skip saving.
    top_k:
        Number of documents retrieved per question.
    max_question_chars:
        Questions longer than this are rejected.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        retrieval_engine: RetrievalEngine,
        context_assembler: ContextAssembler,
        generation_provider: IGenerationProvider,
        chat_store: IChatSessionStore | None = None,
        top_k: int = DEFAULT_TOP_K,
        max_question_chars: int = 1000,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self._embedding = embedding_provider
        self._retrieval = retrieval_engine
        self._assembler = context_assembler
        self._generation = generation_provider
        self._chat_store = chat_store
        self._top_k = top_k
        self._max_question_chars = max_question_chars
        self._system_prompt = system_prompt

    def validate_question(self, question: str | None) -> str:
        """Return the stripped question or raise :class:`InputValidationError`."""
        if question is None or not question.strip():
            raise InputValidationError(message="Question is required")
        if len(question) > self._max_question_chars:
            raise InputValidationError(
                message=f"Question is too long (max {self._max_question_chars} characters)"
            )
        return question.strip()

    async def ask(self, question: str, user_id: str | None = None) -> QueryAnswer:
        """Answer *question*, saving the exchange for *user_id* when given."""
        text = self.validate_question(question)

        hits, mode = await self._retrieve(text)
        context = self._assembler.assemble(hits)

        started = time.monotonic()
        answer = await self._generation.generate(self._system_prompt, context, text)
        response_time = round(time.monotonic() - started, 3)

        resolved = is_resolved(answer)
        session_id = await self._save_exchange(user_id, text, answer, resolved, response_time)

        logger.info(
            "question_answered",
            question_chars=len(text),
            retrieval_mode=mode.value,
            sources=len(hits),
            resolved=resolved,
            response_time=response_time,
        )
        return QueryAnswer(
            question=text,
            answer=answer,
            sources=[self._cite(hit) for hit in hits],
            is_resolved=resolved,
            response_time=response_time,
            retrieval_mode=mode,
            session_id=session_id,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _retrieve(self, text: str) -> tuple[list[ScoredDocument], RetrievalMode]:
        embedding = await self._embedding.embed(text)
        if embedding.ok:
            hits = await self._retrieval.search_by_vector(embedding.vector, self._top_k)
            if hits:
                return hits, RetrievalMode.VECTOR
            logger.info("vector_search_empty_falling_back")
        else:
            logger.info("question_embedding_unavailable", kind=embedding.kind.value)

        hits = await self._retrieval.search_by_text(text, self._top_k)
        return hits, RetrievalMode.LEXICAL

    async def _save_exchange(
        self,
        user_id: str | None,
        question: str,
        answer: str,
        resolved: bool,
        response_time: float,
    ) -> str | None:
        if self._chat_store is None or not user_id:
            return None
        session = ChatSession(
            user_id=user_id,
            messages=[
                ChatTurn(role=ChatRole.USER, content=question),
                ChatTurn(role=ChatRole.ASSISTANT, content=answer),
            ],
            is_resolved=resolved,
            response_time=response_time,
        )
        try:
            await self._chat_store.save(session)
        except Exception as exc:
            # History is a side record; the student still gets the answer.
            logger.warning(
                "chat_history_save_failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None
        return session.id

    @staticmethod
    def _cite(hit: ScoredDocument) -> SourceCitation:
        doc = hit.document
        return SourceCitation(
            id=doc.id,
            title=doc.title,
            category=doc.category,
            similarity=hit.similarity,
            is_chunk=doc.is_chunk,
            chunk_index=doc.chunk_index,
        )
