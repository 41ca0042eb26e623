"""Standalone CLI for managing the Asash AI knowledge base.

Usage::

    python -m asash.cli text --title "ID Card Replacement" \\
        --file procedures/id_card.txt --category id_services --tags "id,card"

    python -m asash.cli text --title "Library Hours" --content "Open 8am-8pm..."

    python -m asash.cli pdf --file handbook.pdf --category policy

    python -m asash.cli list --category registrar --search transcript

    python -m asash.cli delete --id 3f2c... --yes

    python -m asash.cli ask "How do I replace my lost ID card?"

Reads the same configuration as the web app (``config/config.yaml``,
environment, ``.env``) and works on the same databases, so documents added
here are immediately visible to the API.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from asash.config.loader import load_settings
from asash.config.settings import Settings
from asash.models.knowledge import DocumentCategory, DocumentSource, IngestionResult
from asash.utils.errors import AsashError
from asash.utils.logging import configure_logging


def _build_services(app_settings: Settings) -> dict[str, Any]:
    """Construct the stores and services the CLI commands need.

    Imports are deferred so ``--help`` stays fast and does not open
    ChromaDB.
    """
    from asash.providers.embedding.voyage_embedding_provider import (
        VoyageEmbeddingProvider,
    )
    from asash.providers.generation.openai_generation_provider import (
        OpenAICompatibleGenerationProvider,
    )
    from asash.providers.store.chromadb_vector_index import ChromaDBVectorIndex
    from asash.providers.store.sqlite_chat_session_store import SQLiteChatSessionStore
    from asash.providers.store.sqlite_document_store import SQLiteDocumentStore
    from asash.services.context_assembler import ContextAssembler
    from asash.services.ingestion import IngestionService, TextChunker
    from asash.services.qa_service import QAService
    from asash.services.retrieval_service import RetrievalEngine

    embedding_provider = VoyageEmbeddingProvider(settings=app_settings)
    document_store = SQLiteDocumentStore(db_path=app_settings.knowledge_db_path)
    chat_store = SQLiteChatSessionStore(db_path=app_settings.chat_db_path)
    vector_index = ChromaDBVectorIndex(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        dimension=app_settings.embedding_dimension,
    )

    ingestion_service = IngestionService(
        chunker=TextChunker(
            window_size=app_settings.chunk_window_size,
            overlap=app_settings.chunk_overlap,
            threshold=app_settings.chunk_threshold,
            break_on_whitespace=app_settings.chunk_break_on_whitespace,
        ),
        embedding_provider=embedding_provider,
        document_store=document_store,
        vector_index=vector_index,
        embedding_concurrency=app_settings.embedding_concurrency,
        max_title_chars=app_settings.max_title_chars,
    )
    qa_service = QAService(
        embedding_provider=embedding_provider,
        retrieval_engine=RetrievalEngine(
            document_store=document_store,
            vector_index=vector_index,
            candidate_multiplier=app_settings.vector_candidate_multiplier,
        ),
        context_assembler=ContextAssembler(
            max_chars_per_doc=app_settings.context_max_chars_per_doc
        ),
        generation_provider=OpenAICompatibleGenerationProvider(settings=app_settings),
        chat_store=chat_store,
        top_k=app_settings.retrieval_top_k,
        max_question_chars=app_settings.max_question_chars,
    )

    return {
        "embedding_provider": embedding_provider,
        "document_store": document_store,
        "chat_store": chat_store,
        "ingestion_service": ingestion_service,
        "qa_service": qa_service,
    }


def _print_result(result: IngestionResult) -> None:
    print("\nIngestion complete:")
    print(f"  Document ID:    {result.document_id}")
    print(f"  Category:       {result.category.value}")
    if result.chunked:
        print(f"  Chunks created: {result.chunk_count}")
    print(f"  Embedded:       {result.embedded_count}")
    if result.failed_embeddings:
        print(f"  Not embedded:   {result.failed_embeddings} (lexical search only)")
    print(f"  Time:           {result.ingestion_time:.2f}s")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_text(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Ingest inline content or a UTF-8 text file."""
    if args.file:
        path = Path(args.file)
        print(f"Ingesting text file: {path}")
        result = await services["ingestion_service"].ingest_file(
            path.read_bytes(),
            filename=path.name,
            title=args.title,
            category=args.category,
            tags=args.tags,
            owner_id=args.owner,
            office=args.office,
        )
    else:
        print(f"Ingesting document: {args.title}")
        result = await services["ingestion_service"].ingest(
            title=args.title,
            raw_content=args.content,
            category=args.category,
            tags=args.tags,
            owner_id=args.owner,
            office=args.office,
            source=DocumentSource.MANUAL,
        )
    _print_result(result)
    return 0


async def _handle_pdf(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Ingest a PDF document."""
    path = Path(args.file)
    print(f"Ingesting PDF: {path}")
    result = await services["ingestion_service"].ingest_file(
        path.read_bytes(),
        filename=path.name,
        title=args.title,
        category=args.category,
        tags=args.tags,
        owner_id=args.owner,
        office=args.office,
    )
    _print_result(result)
    return 0


async def _handle_delete(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Delete a document and, for a chunked document, all of its chunks."""
    document = await services["document_store"].get(args.id)
    if document is None:
        print(f"Error: document {args.id} not found.", file=sys.stderr)
        return 1

    print(f"Deleting: {document.title}")
    if document.is_parent:
        print(f"  Also removes its {document.chunk_count} chunks")

    if not args.yes:
        confirm = input("  Proceed? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    removed = await services["ingestion_service"].delete(args.id)
    print(f"\n  Deleted {removed} records.")
    return 0


async def _handle_list(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Print one page of the document catalogue."""
    documents, total = await services["document_store"].list_documents(
        category=DocumentCategory(args.category) if args.category else None,
        search=args.search,
        include_chunks=args.include_chunks,
        public_only=not args.all,
        page=args.page,
        limit=args.limit,
    )

    print(f"Documents ({total} total, page {args.page})")
    print("=" * 72)
    for doc in documents:
        kind = "chunk" if doc.is_chunk else ("parent" if doc.is_parent else "doc")
        print(
            f"  {doc.id}  {doc.category.value:<12} {kind:<6} "
            f"{doc.status.value:<10} {doc.title}"
        )
    if not documents:
        print("  (none)")
    return 0


async def _handle_ask(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Answer a question against the knowledge base."""
    answer = await services["qa_service"].ask(args.question, user_id=args.user)

    print(answer.answer)
    print()
    print(f"Retrieval: {answer.retrieval_mode.value} | "
          f"Resolved: {'yes' if answer.is_resolved else 'no'} | "
          f"Time: {answer.response_time:.2f}s")
    if answer.sources:
        print("Sources:")
        for position, source in enumerate(answer.sources, start=1):
            relevance = (
                f" ({source.similarity * 100:.1f}%)" if source.similarity is not None else ""
            )
            print(f"  {position}. {source.title}{relevance}")
    return 0


_HANDLERS = {
    "text": _handle_text,
    "pdf": _handle_pdf,
    "delete": _handle_delete,
    "list": _handle_list,
    "ask": _handle_ask,
}


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    services = _build_services(app_settings)
    await services["document_store"].initialize()
    await services["chat_store"].initialize()
    try:
        return await _HANDLERS[args.command](args, services)
    finally:
        await services["embedding_provider"].aclose()


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_metadata_arguments(parser: argparse.ArgumentParser) -> None:
    categories = [c.value for c in DocumentCategory]
    parser.add_argument(
        "--category",
        choices=categories,
        default=DocumentCategory.GENERAL.value,
        help="Document category (default: general)",
    )
    parser.add_argument("--tags", default=None, help="Comma-separated tags")
    parser.add_argument("--office", default=None, help="Responsible office")
    parser.add_argument("--owner", default=None, help="Administrator id recorded as uploader")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the knowledge-base CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m asash.cli",
        description="Manage the Asash AI knowledge base.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    text_parser = subparsers.add_parser("text", help="Ingest a text file or inline content")
    text_parser.add_argument("--title", default=None, help="Document title (default: file name)")
    source = text_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="Path to a .txt file")
    source.add_argument("--content", help="Document content")
    _add_metadata_arguments(text_parser)

    pdf_parser = subparsers.add_parser("pdf", help="Ingest a PDF document")
    pdf_parser.add_argument("--file", required=True, help="Path to the PDF file")
    pdf_parser.add_argument("--title", default=None, help="Document title (default: file name)")
    _add_metadata_arguments(pdf_parser)

    delete_parser = subparsers.add_parser("delete", help="Delete a document and its chunks")
    delete_parser.add_argument("--id", required=True, help="Document id")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    list_parser = subparsers.add_parser("list", help="List documents, newest first")
    list_parser.add_argument("--category", choices=[c.value for c in DocumentCategory])
    list_parser.add_argument("--search", default=None, help="Full-text filter")
    list_parser.add_argument(
        "--include-chunks", action="store_true", dest="include_chunks", help="Show chunk records"
    )
    list_parser.add_argument("--all", action="store_true", help="Include non-public documents")
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument("--limit", type=int, default=20)

    ask_parser = subparsers.add_parser("ask", help="Ask the assistant a question")
    ask_parser.add_argument("question", help="Question text")
    ask_parser.add_argument("--user", default=None, help="Save the exchange for this user id")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse arguments, load settings and dispatch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "text" and args.file is None and not args.title:
        parser.error("--title is required with --content")

    app_settings = load_settings()
    configure_logging(log_level=app_settings.log_level, app_env=app_settings.app_env)

    try:
        exit_code = asyncio.run(_run(args, app_settings))
    except AsashError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
