"""Pydantic models for RAG: chunks, patient documents, and retrieval results."""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EmbeddingVector = list[float]

SourceType = Literal["patient_document", "medical_knowledge"]

VectorStatus = Literal["pending", "ready", "degraded", "failed"]

KnowledgeCategory = Literal[
    "cardiovascular",
    "diabetes",
    "laboratory",
    "treatment",
    "diagnostic_criteria",
    "heart_failure",
    "hfpef",
    "diastolic_dysfunction",
    "aortic_stenosis",
    "cardiac_performance",
    "myocardial_perfusion",
    "obesity",
]


class Chunk(BaseModel):
    """A contiguous slice of source text; ``content == text[start_offset:end_offset]``."""

    model_config = ConfigDict(frozen=True)

    index: int
    content: str
    start_offset: int
    end_offset: int


class KnowledgeChunk(BaseModel):
    """A chunk of curated reference material, tagged with exactly one category."""

    model_config = ConfigDict(frozen=True)

    content: str
    source: str
    category: KnowledgeCategory
    chunk_index: int


class TestResult(BaseModel):
    """A single reading parsed out of a patient document."""

    __test__ = False  # not a pytest test class

    name: str
    value: str
    unit: str = ""
    normal_range: str = ""
    status: str = "Unknown"

    def describe(self) -> str:
        value = f"{self.value} {self.unit}".strip()
        return (
            f"Patient's {self.name}: {value} "
            f"(Normal range: {self.normal_range or 'not stated'}, Status: {self.status})"
        )


class PatientDocument(BaseModel):
    """One uploaded medical file, as loaded from the ``patient_documents`` table."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    file_name: str
    upload_date: datetime.datetime
    content: str
    chunks: list[Chunk] = Field(default_factory=list)
    test_results: dict[str, TestResult] = Field(default_factory=dict)
    entities: dict[str, list[str]] = Field(default_factory=dict)
    vector_status: VectorStatus = "pending"
    failed_chunks: list[int] = Field(default_factory=list)


class VectorCandidate(BaseModel):
    """A stored vector read back from a partition, ready for ranking."""

    content: str
    vector: EmbeddingVector
    chunk_index: int
    source_type: SourceType
    source_label: str
    category: str | None = None


class RetrievalResult(BaseModel):
    """A ranked excerpt with its cosine similarity and provenance."""

    content: str
    similarity: float
    source_type: SourceType
    source_label: str
    category: str | None = None
    chunk_index: int


class StoreReport(BaseModel):
    """Outcome of writing one scope's chunks into a vector partition."""

    stored: int
    failed: list[int] = Field(default_factory=list)


class RetrievalContext(BaseModel):
    """The three unmerged evidence groups produced for a single query."""

    patient_excerpts: list[RetrievalResult] = Field(default_factory=list)
    knowledge_excerpts: list[RetrievalResult] = Field(default_factory=list)
    structured_fallback: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    medication_query: bool = False
