"""Patient document data access service."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rag_backend.models.orm import PatientDocumentRecord
from rag_backend.models.rag import Chunk, PatientDocument, TestResult, VectorStatus


class DocumentNotFoundError(Exception):
    """Raised when a query or deletion names a document that doesn't exist."""

    def __init__(self, document_id: str | None) -> None:
        self.code = "DOCUMENT_NOT_FOUND"
        self.message = (
            f"Document with ID {document_id} not found"
            if document_id
            else "No documents have been uploaded"
        )
        super().__init__(self.message)


async def create_document(
    session: AsyncSession,
    *,
    file_name: str,
    content: str,
    chunks: list[Chunk],
    test_results: dict[str, TestResult],
    entities: dict[str, list[str]],
) -> PatientDocument:
    record = PatientDocumentRecord(
        id=str(uuid.uuid4()),
        file_name=file_name,
        content=content,
        chunks=[c.model_dump() for c in chunks],
        test_results={k: v.model_dump() for k, v in test_results.items()},
        entities=entities,
        vector_status="pending",
        failed_chunks=[],
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return PatientDocument.model_validate(record)


async def get_document(session: AsyncSession, document_id: str) -> PatientDocument | None:
    record = await session.get(PatientDocumentRecord, document_id)
    return PatientDocument.model_validate(record) if record else None


async def get_latest_document(session: AsyncSession) -> PatientDocument | None:
    result = await session.execute(
        select(PatientDocumentRecord)
        .order_by(PatientDocumentRecord.upload_date.desc())
        .limit(1)
    )
    record = result.scalar_one_or_none()
    return PatientDocument.model_validate(record) if record else None


async def list_documents(session: AsyncSession) -> Sequence[PatientDocumentRecord]:
    result = await session.execute(
        select(PatientDocumentRecord).order_by(PatientDocumentRecord.upload_date.desc())
    )
    return result.scalars().all()


async def mark_vector_status(
    session: AsyncSession,
    document_id: str,
    status: VectorStatus,
    failed_chunks: list[int],
) -> None:
    """The one in-place update a document gets: its end-of-ingestion vector state.

    Reloads the row so a deletion committed by another session is seen.
    """
    record = await session.get(PatientDocumentRecord, document_id, populate_existing=True)
    if record is None:
        raise DocumentNotFoundError(document_id)
    record.vector_status = status
    record.failed_chunks = failed_chunks
    await session.commit()


async def delete_document(session: AsyncSession, document_id: str) -> None:
    record = await session.get(PatientDocumentRecord, document_id)
    if record is None:
        raise DocumentNotFoundError(document_id)
    await session.delete(record)
    await session.commit()
