"""Document upload and management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from rag_backend.dependencies import AppServices, get_services, get_session
from rag_backend.models.schemas import DocumentSummary, ErrorDetail, UploadResponse
from rag_backend.services import document_service
from rag_backend.services.document_service import DocumentNotFoundError
from rag_backend.services.ingestion import IngestionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["documents"])

PDF_CONTENT_TYPE = "application/pdf"


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_session),
    services: AppServices = Depends(get_services),
) -> UploadResponse:
    if file.content_type != PDF_CONTENT_TYPE:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="INVALID_FILE_TYPE",
                message="Only PDF files are allowed",
                details={"content_type": file.content_type},
            ).model_dump(),
        )

    data = await file.read()
    if len(data) > services.settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="FILE_TOO_LARGE",
                message=f"File exceeds {services.settings.max_upload_bytes} bytes",
            ).model_dump(),
        )

    file_name = file.filename or "document.pdf"
    logger.info("Ingesting upload %s (%d bytes)", file_name, len(data))
    try:
        document = await services.ingestion.ingest(session, file_name, data)
    except IngestionError as e:
        logger.warning("Upload %s rejected: %s", file_name, e.message)
        raise HTTPException(
            status_code=422,
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )
    except DocumentNotFoundError as e:
        logger.warning("Upload %s was deleted before ingestion finished", file_name)
        raise HTTPException(
            status_code=409,
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )

    return UploadResponse(
        document_id=document.id,
        file_name=document.file_name,
        entities=document.entities,
        vector_status=document.vector_status,
    )


@router.get("/documents", response_model=list[DocumentSummary])
async def list_documents(
    session: AsyncSession = Depends(get_session),
) -> list[DocumentSummary]:
    records = await document_service.list_documents(session)
    return [DocumentSummary.model_validate(r) for r in records]


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    session: AsyncSession = Depends(get_session),
    services: AppServices = Depends(get_services),
) -> Response:
    """Remove the document's vectors, then its row."""
    if await document_service.get_document(session, document_id) is None:
        error = DocumentNotFoundError(document_id)
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code=error.code, message=error.message).model_dump(),
        )
    await services.patient_store.delete_scope(document_id)
    try:
        await document_service.delete_document(session, document_id)
    except DocumentNotFoundError:
        logger.info("Document %s was already deleted", document_id)
    logger.info("Deleted document %s and its vectors", document_id)
    return Response(status_code=204)
