"""Query-time retrieval: topic routing, two-partition vector search, structured fallback."""

from __future__ import annotations

import logging

from rag_backend.models.rag import (
    EmbeddingVector,
    PatientDocument,
    RetrievalContext,
    RetrievalResult,
)
from rag_backend.services import structured_extraction
from rag_backend.services.embeddings import EmbeddingError, EmbeddingProvider
from rag_backend.services.ranker import rank
from rag_backend.services.vector_store import KnowledgeBaseStore, PatientDocumentStore

logger = logging.getLogger(__name__)

# (category, keywords): a query mentioning any keyword is routed to the category.
TOPIC_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "cardiovascular",
        (
            "cholesterol", "ldl", "hdl", "triglyceride", "lipid", "heart",
            "cardiovascular", "cardiac",
        ),
    ),
    ("diabetes", ("diabetes", "hba1c", "glucose", "blood sugar", "insulin")),
    ("laboratory", ("test", "lab", "result", "value", "normal", "range")),
    ("treatment", ("treatment", "medication", "drug", "therapy", "management")),
    ("obesity", ("bmi", "obesity", "overweight", "weight")),
)

TREATMENT_CATEGORY = "treatment"


def classify_topics(query: str) -> list[str]:
    """Categories whose keywords appear in the query; empty means all categories."""
    lowered = query.lower()
    return [
        category
        for category, keywords in TOPIC_RULES
        if any(keyword in lowered for keyword in keywords)
    ]


class RetrievalOrchestrator:
    """Collects patient and reference evidence for one question, kept apart by source."""

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        patient_store: PatientDocumentStore,
        knowledge_store: KnowledgeBaseStore,
        *,
        patient_top_k: int = 5,
        knowledge_top_k: int = 5,
    ) -> None:
        self._embeddings = embeddings
        self._patient_store = patient_store
        self._knowledge_store = knowledge_store
        self.patient_top_k = patient_top_k
        self.knowledge_top_k = knowledge_top_k

    async def _embed_query(self, query: str) -> EmbeddingVector | None:
        try:
            return await self._embeddings.embed(query)
        except EmbeddingError as e:
            logger.warning("Query embedding failed (%s): %s", e.code, e.message)
            return None

    async def _knowledge_excerpts(
        self,
        query_vector: EmbeddingVector,
        categories: list[str],
        exclude: list[str],
    ) -> list[RetrievalResult]:
        try:
            candidates = await self._knowledge_store.all_vectors_for(categories, exclude)
        except Exception:
            logger.exception("Knowledge base read failed, continuing without reference data")
            return []
        return rank(query_vector, candidates, self.knowledge_top_k)

    async def _patient_excerpts(
        self, query_vector: EmbeddingVector, document_id: str
    ) -> list[RetrievalResult]:
        try:
            candidates = await self._patient_store.all_vectors_for(document_id)
        except Exception:
            logger.exception("Patient vector read failed for document %s", document_id)
            return []
        return rank(query_vector, candidates, self.patient_top_k)

    async def retrieve(self, query: str, document: PatientDocument) -> RetrievalContext:
        """Gather the three evidence groups for ``query`` against ``document``.

        Embedding or store failures degrade to empty vector results; the
        structured fallback then answers from the document's test results.
        """
        categories = classify_topics(query)
        medication_query = structured_extraction.is_medication_query(query)
        structured: list[str] = []

        if structured_extraction.is_finding_query(query):
            findings, finding_categories = structured_extraction.extract_findings(
                document.content
            )
            structured.extend(findings)
            if findings:
                # A bare finding query gets routed to the findings' categories
                # as well as whatever topics it named
                for category in finding_categories:
                    if category not in categories:
                        categories.append(category)

        medications = (
            structured_extraction.medication_lines(document.content)
            if medication_query
            else []
        )
        exclude = [TREATMENT_CATEGORY] if medication_query else []
        search_categories = [c for c in categories if c not in exclude]

        logger.info(
            "Retrieval: document=%s categories=%s medication_query=%s vector_status=%s",
            document.id,
            search_categories or "all",
            medication_query,
            document.vector_status,
        )

        query_vector = await self._embed_query(query)
        knowledge_excerpts: list[RetrievalResult] = []
        patient_excerpts: list[RetrievalResult] = []
        if query_vector is not None:
            knowledge_excerpts = await self._knowledge_excerpts(
                query_vector, search_categories, exclude
            )
            patient_excerpts = await self._patient_excerpts(query_vector, document.id)

        if medications == [structured_extraction.NO_MEDICATIONS_MARKER]:
            # Reference material must not become the source of a medication list
            knowledge_excerpts = []

        if not patient_excerpts:
            logger.warning(
                "No patient vectors for document %s, using structured fallback", document.id
            )
            structured.extend(structured_extraction.fallback_lines(query, document))
        structured.extend(medications)

        for r in patient_excerpts + knowledge_excerpts:
            logger.debug(
                "  %s chunk=%d similarity=%.3f label=%r",
                r.source_type,
                r.chunk_index,
                r.similarity,
                r.source_label,
            )

        return RetrievalContext(
            patient_excerpts=patient_excerpts,
            knowledge_excerpts=knowledge_excerpts,
            structured_fallback=structured,
            categories=search_categories,
            medication_query=medication_query,
        )
