"""Text embedding via Google GenAI (Gemini API / Vertex AI)."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from rag_backend.config import Settings
from rag_backend.models.rag import EmbeddingVector

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when an embedding call fails; callers treat it as no vector evidence."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Contract for embedding generation; dimension is fixed per provider."""

    dimensions: int

    async def embed(self, text: str) -> EmbeddingVector:
        """Embed a query string."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingVector]:
        """Embed document chunks, one vector per text in order."""
        ...


def create_genai_client(settings: Settings) -> genai.Client:
    """Gemini Developer API when a key is set, Vertex AI via ADC otherwise.

    The same client instance exposes both sync (client.models) and async
    (client.aio.models) interfaces.
    """
    if settings.gemini_api_key:
        return genai.Client(api_key=settings.gemini_api_key)
    return genai.Client(
        vertexai=True,
        project=settings.gcp_project_id,
        location=settings.gcp_location,
    )


_VERTEX_PREDICT_URL = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:predict"
)


class GeminiEmbeddings:
    """Embedding provider backed by a Google text-embedding model."""

    def __init__(self, client: genai.Client, settings: Settings) -> None:
        self._client = client
        self._settings = settings
        self.model = settings.embedding_model
        self.dimensions = settings.embedding_dimensions
        self.timeout = settings.embedding_timeout_seconds

    async def _vertex_embed_via_api_key(
        self, texts: list[str], task_type: str
    ) -> list[EmbeddingVector]:
        """Call the Vertex AI embedding endpoint directly using a GCP API key."""
        url = _VERTEX_PREDICT_URL.format(
            location=self._settings.gcp_location,
            project=self._settings.gcp_project_id,
            model=self.model,
        )
        body = {
            "instances": [{"content": t, "task_type": task_type} for t in texts],
            "parameters": {"outputDimensionality": self.dimensions},
        }
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                url,
                params={"key": self._settings.google_api_key},
                json=body,
                timeout=self.timeout,
            )
        resp.raise_for_status()
        return [p["embeddings"]["values"] for p in resp.json()["predictions"]]

    async def _sdk_embed(self, texts: list[str], task_type: str) -> list[EmbeddingVector]:
        response = await self._client.aio.models.embed_content(
            model=self.model,
            contents=texts,
            config=types.EmbedContentConfig(
                output_dimensionality=self.dimensions,
                task_type=task_type,
            ),
        )
        return [list(e.values) for e in response.embeddings]

    async def _embed(self, texts: list[str], task_type: str) -> list[EmbeddingVector]:
        try:
            if self._settings.google_api_key:
                call = self._vertex_embed_via_api_key(texts, task_type)
            else:
                call = self._sdk_embed(texts, task_type)
            vectors = await asyncio.wait_for(call, timeout=self.timeout)
        except TimeoutError as e:
            raise EmbeddingError(
                code="EMBEDDING_TIMEOUT",
                message=f"Embedding call exceeded {self.timeout:.0f}s",
            ) from e
        except (genai_errors.APIError, httpx.HTTPError, KeyError) as e:
            raise EmbeddingError(
                code="EMBEDDING_FAILED",
                message=f"Embedding call failed: {e}",
            ) from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                code="EMBEDDING_COUNT_MISMATCH",
                message=f"Expected {len(texts)} vectors, got {len(vectors)}",
            )
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise EmbeddingError(
                    code="EMBEDDING_DIMENSION_MISMATCH",
                    message=f"Expected {self.dimensions}-dim vector, got {len(vector)}",
                )
        return [[float(v) for v in vector] for vector in vectors]

    async def embed(self, text: str) -> EmbeddingVector:
        """Embed a single text string for query-time search."""
        logger.debug(
            "Embedding query (%d chars): %r",
            len(text),
            text[:100] + ("..." if len(text) > 100 else ""),
        )
        vectors = await self._embed([text], "RETRIEVAL_QUERY")
        logger.debug("Embedded query -> %d-dim vector", len(vectors[0]))
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingVector]:
        """Embed a batch of texts for document indexing."""
        if not texts:
            return []
        logger.info(
            "Embedding batch of %d texts (model=%s, dims=%d)",
            len(texts),
            self.model,
            self.dimensions,
        )
        vectors = await self._embed(texts, "RETRIEVAL_DOCUMENT")
        logger.info("Embedded %d texts -> %d vectors", len(texts), len(vectors))
        return vectors
