"""Unit tests for QAService -- the question answering pipeline."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from asash.config.prompts import NOT_FOUND_PHRASE
from asash.models.chat import RetrievalMode
from asash.models.knowledge import DocumentCategory, DocumentStatus, KnowledgeDocument
from asash.services.context_assembler import CONTEXT_HEADER, ContextAssembler
from asash.services.qa_service import QAService, is_resolved
from asash.services.retrieval_service import RetrievalEngine
from asash.utils.errors import GenerationAuthError, GenerationError, InputValidationError
from tests.conftest import (
    ANSWER_TEMPLATE,
    FakeEmbeddingProvider,
    InMemoryVectorIndex,
    ScriptedGenerationProvider,
    hash_to_vector,
)

_QUESTION = "How do I replace my lost ID?"
_NOT_FOUND = NOT_FOUND_PHRASE


def _build(
    document_store,
    vector_index,
    embedding=None,
    generation=None,
    chat_store=None,
    **kwargs,
) -> tuple[QAService, RetrievalEngine]:
    engine = RetrievalEngine(document_store, vector_index)
    service = QAService(
        embedding_provider=embedding or FakeEmbeddingProvider(),
        retrieval_engine=engine,
        context_assembler=ContextAssembler(),
        generation_provider=generation or ScriptedGenerationProvider(),
        chat_store=chat_store,
        **kwargs,
    )
    return service, engine


async def _seed_id_card_doc(document_store, vector_index, vector=None) -> KnowledgeDocument:
    doc = KnowledgeDocument(
        id="idcard",
        title="ID Card Replacement",
        content="Report the loss to ID Services and pay the replacement fee.",
        category=DocumentCategory.ID_SERVICES,
        embedding=vector if vector is not None else hash_to_vector(_QUESTION),
        status=DocumentStatus.INDEXED,
    )
    await document_store.create(doc)
    await vector_index.upsert([doc])
    return doc


class TestIsResolved:
    def test_normal_answer_resolved(self) -> None:
        assert is_resolved(ANSWER_TEMPLATE) is True

    def test_not_found_phrase_unresolved(self) -> None:
        assert is_resolved(_NOT_FOUND) is False


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("question", ["", "   ", "\n\t"])
    async def test_empty_question_rejected(self, document_store, vector_index, question) -> None:
        embedding = FakeEmbeddingProvider()
        generation = ScriptedGenerationProvider()
        service, _ = _build(document_store, vector_index, embedding, generation)

        with pytest.raises(InputValidationError, match="Question is required"):
            await service.ask(question)
        assert embedding.calls == []
        assert generation.calls == []

    @pytest.mark.asyncio
    async def test_too_long_question_rejected(self, document_store, vector_index) -> None:
        embedding = FakeEmbeddingProvider()
        generation = ScriptedGenerationProvider()
        service, _ = _build(
            document_store, vector_index, embedding, generation, max_question_chars=20
        )

        with pytest.raises(InputValidationError, match="too long"):
            await service.ask("x" * 21)
        assert embedding.calls == []
        assert generation.calls == []
        assert vector_index.query_calls == []

    @pytest.mark.asyncio
    async def test_question_at_limit_accepted(self, document_store, vector_index) -> None:
        service, _ = _build(document_store, vector_index, max_question_chars=20)
        answer = await service.ask("y" * 20)
        assert answer.question == "y" * 20


class TestRetrievalRouting:
    @pytest.mark.asyncio
    async def test_vector_hit_skips_lexical_search(self, document_store, vector_index) -> None:
        await _seed_id_card_doc(document_store, vector_index)
        service, engine = _build(document_store, vector_index)
        engine.search_by_text = AsyncMock(return_value=[])

        answer = await service.ask(_QUESTION)

        assert answer.retrieval_mode is RetrievalMode.VECTOR
        assert [s.id for s in answer.sources] == ["idcard"]
        assert answer.sources[0].similarity == pytest.approx(1.0)
        engine.search_by_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embedding_failure_falls_back_to_lexical(self, document_store, vector_index) -> None:
        await _seed_id_card_doc(document_store, vector_index)
        service, engine = _build(
            document_store, vector_index, embedding=FakeEmbeddingProvider(fail_all=True)
        )
        original = engine.search_by_text
        engine.search_by_text = AsyncMock(side_effect=original)

        answer = await service.ask("replacement fee for lost ID")

        assert vector_index.query_calls == []
        engine.search_by_text.assert_awaited_once()
        assert answer.retrieval_mode is RetrievalMode.LEXICAL
        assert [s.id for s in answer.sources] == ["idcard"]
        assert answer.sources[0].similarity is None

    @pytest.mark.asyncio
    async def test_empty_vector_result_falls_back_once(self, document_store, vector_index) -> None:
        service, engine = _build(document_store, vector_index)
        engine.search_by_text = AsyncMock(return_value=[])

        answer = await service.ask(_QUESTION)

        assert vector_index.query_calls == [30]
        engine.search_by_text.assert_awaited_once_with(_QUESTION, 3)
        assert answer.retrieval_mode is RetrievalMode.LEXICAL
        assert answer.sources == []

    @pytest.mark.asyncio
    async def test_unavailable_index_falls_back(self, document_store) -> None:
        index = InMemoryVectorIndex(unavailable=True)
        service, engine = _build(document_store, index)
        engine.search_by_text = AsyncMock(return_value=[])

        answer = await service.ask(_QUESTION)

        engine.search_by_text.assert_awaited_once()
        assert answer.retrieval_mode is RetrievalMode.LEXICAL


class TestAnswering:
    @pytest.mark.asyncio
    async def test_context_passed_to_generation(self, document_store, vector_index) -> None:
        await _seed_id_card_doc(document_store, vector_index)
        generation = ScriptedGenerationProvider()
        service, _ = _build(document_store, vector_index, generation=generation)

        answer = await service.ask(f"  {_QUESTION}  ")

        assert answer.answer == ANSWER_TEMPLATE
        assert answer.is_resolved is True
        assert answer.response_time >= 0.0
        _, context, question = generation.calls[0]
        assert question == _QUESTION
        assert context.startswith(CONTEXT_HEADER)
        assert "1. ID Card Replacement (Relevance: 100.0%)" in context

    @pytest.mark.asyncio
    async def test_empty_knowledge_base_still_answers(self, document_store, vector_index) -> None:
        generation = ScriptedGenerationProvider(answer=_NOT_FOUND)
        service, _ = _build(document_store, vector_index, generation=generation)

        answer = await service.ask("Where do I pay the graduation fee?")

        assert generation.calls[0][1] == ""
        assert answer.sources == []
        assert answer.is_resolved is False

    @pytest.mark.asyncio
    async def test_generation_auth_error_propagates(self, document_store, vector_index) -> None:
        generation = ScriptedGenerationProvider(error=GenerationAuthError(provider_name="gemini"))
        service, _ = _build(document_store, vector_index, generation=generation)

        with pytest.raises(GenerationAuthError):
            await service.ask(_QUESTION)

    @pytest.mark.asyncio
    async def test_generation_error_propagates(self, document_store, vector_index) -> None:
        error = GenerationError(message="upstream 500", provider_name="gemini")
        service, _ = _build(
            document_store, vector_index, generation=ScriptedGenerationProvider(error=error)
        )

        with pytest.raises(GenerationError) as exc_info:
            await service.ask(_QUESTION)
        assert not isinstance(exc_info.value, GenerationAuthError)


class TestChatSaving:
    @pytest.mark.asyncio
    async def test_session_saved_for_user(self, document_store, vector_index, chat_store) -> None:
        service, _ = _build(document_store, vector_index, chat_store=chat_store)

        answer = await service.ask(_QUESTION, user_id="student-1")

        assert answer.session_id is not None
        saved = await chat_store.get(answer.session_id)
        assert saved.user_id == "student-1"
        assert [m.content for m in saved.messages] == [_QUESTION, ANSWER_TEMPLATE]
        assert saved.is_resolved is True

    @pytest.mark.asyncio
    async def test_anonymous_question_not_saved(self, document_store, vector_index) -> None:
        chat_store = AsyncMock()
        service, _ = _build(document_store, vector_index, chat_store=chat_store)

        answer = await service.ask(_QUESTION)

        assert answer.session_id is None
        chat_store.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_failure_does_not_fail_answer(self, document_store, vector_index) -> None:
        chat_store = AsyncMock()
        chat_store.save.side_effect = RuntimeError("disk full")
        service, _ = _build(document_store, vector_index, chat_store=chat_store)

        answer = await service.ask(_QUESTION, user_id="student-1")

        assert answer.answer == ANSWER_TEMPLATE
        assert answer.session_id is None
        chat_store.save.assert_awaited_once()
