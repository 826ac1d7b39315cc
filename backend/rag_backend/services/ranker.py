"""Cosine-similarity ranking of stored vectors against a query vector."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from rag_backend.models.rag import EmbeddingVector, RetrievalResult, VectorCandidate


def cosine_similarity(a: EmbeddingVector | np.ndarray, b: EmbeddingVector | np.ndarray) -> float:
    """Cosine similarity in [-1, 1]; 0.0 when either vector has zero magnitude."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vector dimensions differ: {va.shape} vs {vb.shape}")
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / (norm_a * norm_b), -1.0, 1.0))


def rank(
    query_vector: EmbeddingVector,
    candidates: Iterable[VectorCandidate],
    top_k: int,
) -> list[RetrievalResult]:
    """Return the ``top_k`` most similar candidates.

    Ordered by similarity descending, then chunk index ascending; equal keys
    keep their input order.
    """
    if top_k <= 0:
        return []

    query = np.asarray(query_vector, dtype=np.float64)
    scored = [
        RetrievalResult(
            content=candidate.content,
            similarity=cosine_similarity(query, candidate.vector),
            source_type=candidate.source_type,
            source_label=candidate.source_label,
            category=candidate.category,
            chunk_index=candidate.chunk_index,
        )
        for candidate in candidates
    ]
    scored.sort(key=lambda r: (-r.similarity, r.chunk_index))
    return scored[:top_k]
