"""Application service container and FastAPI dependencies.

Clients are created once per application in the lifespan handler and handed
to routes through ``Depends``; nothing here is a module-level singleton.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import Request
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncSession

from rag_backend.config import Settings
from rag_backend.database import Database
from rag_backend.services.embeddings import EmbeddingProvider, GeminiEmbeddings, create_genai_client
from rag_backend.services.entity_extraction import EntityExtractor, create_entity_extractor
from rag_backend.services.generation import GeminiGenerator, GenerativeService
from rag_backend.services.ingestion import IngestionPipeline
from rag_backend.services.retrieval import RetrievalOrchestrator
from rag_backend.services.vector_store import KnowledgeBaseStore, PatientDocumentStore


@dataclass
class AppServices:
    settings: Settings
    database: Database
    qdrant: AsyncQdrantClient
    embeddings: EmbeddingProvider
    generator: GenerativeService
    entity_extractor: EntityExtractor
    patient_store: PatientDocumentStore
    knowledge_store: KnowledgeBaseStore
    retriever: RetrievalOrchestrator
    ingestion: IngestionPipeline

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        database: Database,
        qdrant: AsyncQdrantClient,
        embeddings: EmbeddingProvider,
        generator: GenerativeService,
        entity_extractor: EntityExtractor,
    ) -> AppServices:
        """Wire the stores and pipelines around already-created clients."""
        patient_store = PatientDocumentStore(
            qdrant,
            embeddings,
            settings.patient_collection,
            batch_size=settings.embedding_batch_size,
        )
        knowledge_store = KnowledgeBaseStore(
            qdrant,
            embeddings,
            settings.knowledge_collection,
            batch_size=settings.embedding_batch_size,
        )
        return cls(
            settings=settings,
            database=database,
            qdrant=qdrant,
            embeddings=embeddings,
            generator=generator,
            entity_extractor=entity_extractor,
            patient_store=patient_store,
            knowledge_store=knowledge_store,
            retriever=RetrievalOrchestrator(
                embeddings,
                patient_store,
                knowledge_store,
                patient_top_k=settings.patient_top_k,
                knowledge_top_k=settings.knowledge_top_k,
            ),
            ingestion=IngestionPipeline(
                patient_store,
                entity_extractor,
                chunk_size=settings.chunk_size,
                chunk_overlap=settings.chunk_overlap,
            ),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> AppServices:
        """Production wiring: Postgres, a Qdrant server, and Google GenAI."""
        genai_client = create_genai_client(settings)
        qdrant_kwargs: dict = {"url": settings.qdrant_url}
        if settings.qdrant_api_key:
            qdrant_kwargs["api_key"] = settings.qdrant_api_key
        return cls.build(
            settings,
            database=Database(settings.database_url, echo=settings.debug),
            qdrant=AsyncQdrantClient(**qdrant_kwargs),
            embeddings=GeminiEmbeddings(genai_client, settings),
            generator=GeminiGenerator(genai_client, settings),
            entity_extractor=create_entity_extractor(settings, genai_client),
        )

    async def startup(self) -> None:
        await self.database.create_all()
        await self.patient_store.ensure_collection()
        await self.knowledge_store.ensure_collection()

    async def shutdown(self) -> None:
        await self.qdrant.close()
        await self.database.dispose()


def get_services(request: Request) -> AppServices:
    return request.app.state.services


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for FastAPI routes to get a database session."""
    async with get_services(request).database.session() as session:
        yield session
