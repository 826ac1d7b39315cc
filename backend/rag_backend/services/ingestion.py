"""Upload-time ingestion: PDF → cleaned text → chunks → vectors in the patient store."""

from __future__ import annotations

import asyncio
import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError
from sqlalchemy.ext.asyncio import AsyncSession

from rag_backend.models.rag import PatientDocument, StoreReport, VectorStatus
from rag_backend.services import document_service
from rag_backend.services.document_service import DocumentNotFoundError
from rag_backend.services.entity_extraction import EntityExtractor
from rag_backend.services.test_result_parser import parse_test_results
from rag_backend.services.text_processing import chunk_text, clean_text
from rag_backend.services.vector_store import PatientDocumentStore

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Raised when an upload can't be turned into a document."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


def extract_pdf_text(data: bytes) -> str:
    """Concatenate the text layer of every page."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [(page.extract_text() or "").strip() for page in reader.pages]
    except (PdfReadError, ValueError) as e:
        raise IngestionError(
            code="PDF_EXTRACTION_FAILED",
            message=f"Failed to extract text from PDF: {e}",
        ) from e
    logger.info("Extracted text from %d PDF pages", len(pages))
    return "\n\n".join(p for p in pages if p)


def vector_status_for(report: StoreReport, total_chunks: int) -> VectorStatus:
    if report.stored == total_chunks:
        return "ready"
    if report.stored == 0:
        return "failed"
    return "degraded"


class IngestionPipeline:
    """Builds and persists a patient document, then writes its vectors."""

    def __init__(
        self,
        patient_store: PatientDocumentStore,
        entity_extractor: EntityExtractor,
        *,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
    ) -> None:
        self._patient_store = patient_store
        self._entity_extractor = entity_extractor
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    async def ingest(
        self, session: AsyncSession, file_name: str, pdf_bytes: bytes
    ) -> PatientDocument:
        raw_text = await asyncio.to_thread(extract_pdf_text, pdf_bytes)
        return await self.ingest_text(session, file_name, raw_text)

    async def ingest_text(
        self, session: AsyncSession, file_name: str, raw_text: str
    ) -> PatientDocument:
        """Persist the document as ``pending``, embed it, then record the outcome.

        The document row exists before its vectors do; queries arriving in
        between see no vectors and use the structured fallback.
        """
        content = clean_text(raw_text)
        if not content:
            raise IngestionError(
                code="NO_TEXT",
                message=f"No extractable text in {file_name}; scanned PDFs are not supported",
            )

        test_results = parse_test_results(content)
        chunks = chunk_text(content, self.chunk_size, self.chunk_overlap)
        entities = await self._entity_extractor.extract(content)

        document = await document_service.create_document(
            session,
            file_name=file_name,
            content=content,
            chunks=chunks,
            test_results=test_results,
            entities=entities,
        )
        logger.info(
            "Stored document %s (%s): %d chunks, %d test results",
            document.id,
            file_name,
            len(chunks),
            len(test_results),
        )

        try:
            report = await self._patient_store.store(
                chunks, document.id, file_name=file_name
            )
        except Exception:
            logger.exception("Vector write failed for document %s", document.id)
            report = StoreReport(stored=0, failed=[c.index for c in chunks])

        status = vector_status_for(report, len(chunks))
        try:
            await document_service.mark_vector_status(
                session, document.id, status, report.failed
            )
        except DocumentNotFoundError:
            logger.warning("Document %s deleted during ingestion; dropping its vectors", document.id)
            await self._patient_store.delete_scope(document.id)
            raise
        logger.info(
            "Document %s vectors %s (%d/%d stored)",
            document.id,
            status,
            report.stored,
            len(chunks),
        )
        return document.model_copy(
            update={"vector_status": status, "failed_chunks": report.failed}
        )
