"""Qdrant-backed vector partitions: patient documents and the medical knowledge base.

Both partitions share one injected ``AsyncQdrantClient`` but live in separate
collections, so reference material can never be returned as patient data.
Chunks whose embedding fails are reported and never written; ranking happens
in ``ranker.rank`` over the candidates returned by ``all_vectors_for``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchAny,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Record,
    VectorParams,
)

from rag_backend.models.rag import (
    Chunk,
    EmbeddingVector,
    KnowledgeChunk,
    SourceType,
    StoreReport,
    VectorCandidate,
)
from rag_backend.services.embeddings import EmbeddingError, EmbeddingProvider
from rag_backend.services.text_processing import chunk_text

logger = logging.getLogger(__name__)

_SCROLL_PAGE = 256


class VectorPartition:
    """One Qdrant collection holding chunks plus vectors for a single source type."""

    source_type: SourceType
    index_fields: tuple[str, ...] = ()

    def __init__(
        self,
        client: AsyncQdrantClient,
        embeddings: EmbeddingProvider,
        collection: str,
        *,
        batch_size: int = 16,
    ) -> None:
        self._client = client
        self._embeddings = embeddings
        self.collection = collection
        self.batch_size = batch_size

    # --- Collection management ---

    async def ensure_collection(self) -> None:
        """Create the collection and its payload indexes if they don't exist."""
        if await self._client.collection_exists(self.collection):
            logger.info("Qdrant collection '%s' already exists", self.collection)
            return
        await self._client.create_collection(
            collection_name=self.collection,
            vectors_config=VectorParams(
                size=self._embeddings.dimensions,
                distance=Distance.COSINE,
            ),
        )
        for field in self.index_fields:
            await self._client.create_payload_index(
                collection_name=self.collection,
                field_name=field,
                field_schema=PayloadSchemaType.KEYWORD,
            )
        logger.info("Created Qdrant collection '%s'", self.collection)

    async def drop_collection(self) -> None:
        if await self._client.collection_exists(self.collection):
            await self._client.delete_collection(self.collection)
            logger.info("Dropped Qdrant collection '%s'", self.collection)

    # --- Embedding ---

    async def _embed_one_by_one(
        self, texts: list[str]
    ) -> list[EmbeddingVector | None]:
        vectors: list[EmbeddingVector | None] = []
        for text in texts:
            try:
                vectors.append((await self._embeddings.embed_batch([text]))[0])
            except EmbeddingError as e:
                logger.warning("Embedding failed for chunk: %s", e.message)
                vectors.append(None)
        return vectors

    async def _embed_texts(self, texts: list[str]) -> list[EmbeddingVector | None]:
        """Embed in parallel batches; a failed batch is retried chunk by chunk.

        Returns one entry per text, ``None`` where embedding failed.
        """
        batches = [
            texts[i : i + self.batch_size] for i in range(0, len(texts), self.batch_size)
        ]
        outcomes = await asyncio.gather(
            *(self._embeddings.embed_batch(batch) for batch in batches),
            return_exceptions=True,
        )
        vectors: list[EmbeddingVector | None] = []
        for batch, outcome in zip(batches, outcomes, strict=True):
            if isinstance(outcome, EmbeddingError):
                logger.warning(
                    "Batch of %d chunks failed to embed (%s), retrying individually",
                    len(batch),
                    outcome.code,
                )
                vectors.extend(await self._embed_one_by_one(batch))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                vectors.extend(outcome)
        return vectors

    # --- Read / write helpers ---

    async def _write(self, points: list[PointStruct]) -> None:
        if points:
            await self._client.upsert(collection_name=self.collection, points=points)
        logger.info("Upserted %d points into '%s'", len(points), self.collection)

    async def _scroll(self, query_filter: Filter | None) -> list[Record]:
        if not await self._client.collection_exists(self.collection):
            logger.warning("Qdrant collection '%s' does not exist", self.collection)
            return []
        records: list[Record] = []
        offset = None
        while True:
            page, offset = await self._client.scroll(
                collection_name=self.collection,
                scroll_filter=query_filter,
                limit=_SCROLL_PAGE,
                offset=offset,
                with_payload=True,
                with_vectors=True,
            )
            records.extend(page)
            if offset is None:
                return records

    async def _delete(self, query_filter: Filter) -> None:
        if not await self._client.collection_exists(self.collection):
            return
        await self._client.delete(
            collection_name=self.collection,
            points_selector=FilterSelector(filter=query_filter),
        )

    def _candidate(self, record: Record, source_label: str) -> VectorCandidate:
        payload = record.payload or {}
        return VectorCandidate(
            content=payload["content"],
            vector=list(record.vector),
            chunk_index=payload["chunk_index"],
            source_type=self.source_type,
            source_label=source_label,
            category=payload.get("category"),
        )


class PatientDocumentStore(VectorPartition):
    """Chunks and vectors scoped to one uploaded patient document."""

    source_type: SourceType = "patient_document"
    index_fields = ("document_id",)

    @staticmethod
    def _scope_filter(document_id: str) -> Filter:
        return Filter(
            must=[FieldCondition(key="document_id", match=MatchValue(value=document_id))]
        )

    async def store(
        self, chunks: list[Chunk], document_id: str, *, file_name: str = ""
    ) -> StoreReport:
        """Embed and write a document's chunks in one upsert.

        Chunks that fail to embed are listed in the report and not written.
        """
        vectors = await self._embed_texts([c.content for c in chunks])
        points: list[PointStruct] = []
        failed: list[int] = []
        for chunk, vector in zip(chunks, vectors, strict=True):
            if vector is None:
                failed.append(chunk.index)
                continue
            points.append(
                PointStruct(
                    id=str(uuid.uuid5(uuid.NAMESPACE_DNS, f"{document_id}:{chunk.index}")),
                    vector=vector,
                    payload={
                        "content": chunk.content,
                        "document_id": document_id,
                        "file_name": file_name,
                        "chunk_index": chunk.index,
                        "start_offset": chunk.start_offset,
                        "end_offset": chunk.end_offset,
                    },
                )
            )
        await self._write(points)
        if failed:
            logger.warning(
                "Document %s: %d of %d chunks have no vector", document_id, len(failed), len(chunks)
            )
        return StoreReport(stored=len(points), failed=failed)

    async def all_vectors_for(self, document_id: str) -> list[VectorCandidate]:
        records = await self._scroll(self._scope_filter(document_id))
        logger.debug("Document %s: %d stored vectors", document_id, len(records))
        return [
            self._candidate(r, (r.payload or {}).get("file_name") or document_id)
            for r in records
        ]

    async def delete_scope(self, document_id: str) -> None:
        await self._delete(self._scope_filter(document_id))
        logger.info("Deleted vectors for document %s", document_id)


class KnowledgeBaseStore(VectorPartition):
    """Curated reference material, one category tag per chunk."""

    source_type: SourceType = "medical_knowledge"
    index_fields = ("category", "source")

    async def store(self, chunks: list[Chunk], source: str, category: str) -> StoreReport:
        """Embed and write reference chunks tagged with ``source`` and ``category``."""
        knowledge = [
            KnowledgeChunk(
                content=c.content, source=source, category=category, chunk_index=c.index
            )
            for c in chunks
        ]
        vectors = await self._embed_texts([k.content for k in knowledge])
        points: list[PointStruct] = []
        failed: list[int] = []
        for item, vector in zip(knowledge, vectors, strict=True):
            if vector is None:
                failed.append(item.chunk_index)
                continue
            points.append(
                PointStruct(
                    id=str(
                        uuid.uuid5(
                            uuid.NAMESPACE_DNS,
                            f"{item.source}:{item.category}:{item.chunk_index}",
                        )
                    ),
                    vector=vector,
                    payload=item.model_dump(),
                )
            )
        await self._write(points)
        logger.info(
            "Stored %d knowledge chunks from %r (category=%s, failed=%d)",
            len(points),
            source,
            category,
            len(failed),
        )
        return StoreReport(stored=len(points), failed=failed)

    async def store_knowledge_base_chunks(
        self,
        content: str,
        source: str,
        category: str,
        *,
        chunk_size: int = 1000,
        overlap: int = 200,
    ) -> StoreReport:
        """Chunk a block of reference text and store it under one category."""
        return await self.store(chunk_text(content, chunk_size, overlap), source, category)

    async def all_vectors_for(
        self,
        categories: Sequence[str] = (),
        exclude_categories: Sequence[str] = (),
    ) -> list[VectorCandidate]:
        """Candidates in any of ``categories`` (all when empty), minus exclusions."""
        must = []
        must_not = []
        if categories:
            must.append(FieldCondition(key="category", match=MatchAny(any=list(categories))))
        if exclude_categories:
            must_not.append(
                FieldCondition(key="category", match=MatchAny(any=list(exclude_categories)))
            )
        query_filter = (
            Filter(must=must or None, must_not=must_not or None) if must or must_not else None
        )
        records = await self._scroll(query_filter)
        logger.debug(
            "Knowledge base: %d candidates for categories=%s exclude=%s",
            len(records),
            list(categories),
            list(exclude_categories),
        )
        return [self._candidate(r, (r.payload or {}).get("source", "")) for r in records]

    async def count(self) -> int:
        if not await self._client.collection_exists(self.collection):
            return 0
        result = await self._client.count(collection_name=self.collection, exact=True)
        return result.count
