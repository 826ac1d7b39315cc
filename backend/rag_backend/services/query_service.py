"""Question answering over one patient document: retrieve → assemble → generate."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from rag_backend.models.schemas import QueryResponse
from rag_backend.services import document_service, prompt_assembler
from rag_backend.services.document_service import DocumentNotFoundError
from rag_backend.services.generation import GenerativeService
from rag_backend.services.retrieval import RetrievalOrchestrator

logger = logging.getLogger(__name__)


class MalformedQueryError(Exception):
    """Raised for a blank question, before any retrieval work happens."""

    def __init__(self) -> None:
        self.code = "EMPTY_QUERY"
        self.message = "Query is required"
        super().__init__(self.message)


async def answer_query(
    session: AsyncSession,
    retriever: RetrievalOrchestrator,
    generator: GenerativeService,
    query: str,
    document_id: str | None = None,
) -> QueryResponse:
    """Answer ``query`` from the given document, or the most recent upload.

    Raises MalformedQueryError, DocumentNotFoundError or GenerationError;
    retrieval problems never raise, they only reduce the evidence available.
    """
    if not query or not query.strip():
        raise MalformedQueryError()

    if document_id:
        document = await document_service.get_document(session, document_id)
    else:
        document = await document_service.get_latest_document(session)
    if document is None:
        raise DocumentNotFoundError(document_id)

    logger.info("=== Query: document=%s query=%r ===", document.id, query)
    context = await retriever.retrieve(query, document)
    prompt = prompt_assembler.assemble(query, document, context)
    logger.info(
        "Assembled prompt: %d patient excerpts, %d knowledge excerpts, %d structured lines",
        len(context.patient_excerpts),
        len(context.knowledge_excerpts),
        len(context.structured_fallback),
    )
    logger.debug("Prompt (%d chars):\n%s", len(prompt.text), prompt.text)

    answer = await generator.generate(prompt.text)
    return QueryResponse(answer=answer, sources=prompt.sources)
