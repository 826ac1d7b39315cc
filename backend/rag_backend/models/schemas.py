"""Pydantic request/response/error schemas."""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Upload / document schemas ---


class UploadResponse(ApiModel):
    document_id: str
    file_name: str
    entities: dict[str, list[str]]
    vector_status: str


class DocumentSummary(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    file_name: str
    upload_date: datetime.datetime
    vector_status: str


# --- Query schemas ---


class QueryRequest(ApiModel):
    query: str
    document_id: str | None = None


class SourceCitation(ApiModel):
    id: str
    excerpt: str
    source: str
    category: str | None = None
    type: Literal["patient_document", "medical_knowledge"]


class QueryResponse(ApiModel):
    answer: str
    sources: list[SourceCitation]


class AssembledPrompt(BaseModel):
    """Grounded prompt text plus the citations shown next to the answer."""

    text: str
    sources: list[SourceCitation]


# --- Error schema ---


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict = {}
