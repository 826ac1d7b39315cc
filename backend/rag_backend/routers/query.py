"""Question-answering endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from rag_backend.dependencies import AppServices, get_services, get_session
from rag_backend.models.schemas import ErrorDetail, QueryRequest, QueryResponse
from rag_backend.services.document_service import DocumentNotFoundError
from rag_backend.services.generation import GenerationError
from rag_backend.services.query_service import MalformedQueryError, answer_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["query"])


@router.post("/query", response_model=QueryResponse)
async def query_document(
    request: QueryRequest,
    session: AsyncSession = Depends(get_session),
    services: AppServices = Depends(get_services),
) -> QueryResponse:
    try:
        return await answer_query(
            session,
            services.retriever,
            services.generator,
            request.query,
            request.document_id,
        )
    except MalformedQueryError as e:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )
    except DocumentNotFoundError as e:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )
    except GenerationError as e:
        logger.exception("Answer generation failed for query %r", request.query)
        raise HTTPException(
            status_code=500,
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )
