"""Vector partition tests against an in-memory Qdrant."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from rag_backend.dependencies import AppServices
from rag_backend.models.rag import Chunk
from rag_backend.services.text_processing import chunk_text


def _chunks(*contents: str) -> list[Chunk]:
    chunks = []
    offset = 0
    for i, content in enumerate(contents):
        chunks.append(
            Chunk(index=i, content=content, start_offset=offset, end_offset=offset + len(content))
        )
        offset += len(content)
    return chunks


# --- Collection management ---


class TestCollections:
    async def test_startup_creates_both_collections(self, services: AppServices) -> None:
        assert await services.qdrant.collection_exists("patient_documents")
        assert await services.qdrant.collection_exists("medical_knowledge")

    async def test_ensure_collection_idempotent(self, services: AppServices) -> None:
        await services.patient_store.ensure_collection()
        await services.patient_store.ensure_collection()
        assert await services.qdrant.collection_exists("patient_documents")

    async def test_missing_collection_reads_empty(self, services: AppServices) -> None:
        await services.knowledge_store.drop_collection()
        assert await services.knowledge_store.all_vectors_for() == []
        assert await services.knowledge_store.count() == 0


# --- Patient partition ---


class TestPatientDocumentStore:
    async def test_store_and_read_back(self, services: AppServices) -> None:
        chunks = _chunks("BMI: 31 kg/m2", "HbA1c: 5.4 %", "LDL: 142 mg/dL")
        report = await services.patient_store.store(chunks, "doc-a", file_name="a.pdf")
        assert report.stored == 3
        assert report.failed == []

        candidates = await services.patient_store.all_vectors_for("doc-a")
        assert sorted(c.chunk_index for c in candidates) == [0, 1, 2]
        assert {c.source_type for c in candidates} == {"patient_document"}
        assert {c.source_label for c in candidates} == {"a.pdf"}
        assert all(len(c.vector) == services.embeddings.dimensions for c in candidates)

    async def test_label_falls_back_to_document_id(self, services: AppServices) -> None:
        await services.patient_store.store(_chunks("BMI: 31 kg/m2"), "doc-a")
        (candidate,) = await services.patient_store.all_vectors_for("doc-a")
        assert candidate.source_label == "doc-a"

    async def test_scoped_to_document(self, services: AppServices) -> None:
        await services.patient_store.store(_chunks("alpha reading"), "doc-a")
        await services.patient_store.store(_chunks("beta reading", "gamma"), "doc-b")
        contents = [c.content for c in await services.patient_store.all_vectors_for("doc-a")]
        assert contents == ["alpha reading"]

    async def test_unknown_document_has_no_vectors(self, services: AppServices) -> None:
        assert await services.patient_store.all_vectors_for("missing") == []

    async def test_restore_overwrites_same_points(self, services: AppServices) -> None:
        chunks = _chunks("one", "two")
        await services.patient_store.store(chunks, "doc-a")
        await services.patient_store.store(chunks, "doc-a")
        assert len(await services.patient_store.all_vectors_for("doc-a")) == 2

    async def test_failed_chunks_are_not_written(self, services: AppServices) -> None:
        services.embeddings.fail_on = {"POISON"}
        chunks = _chunks("first", "POISON second", "third")
        report = await services.patient_store.store(chunks, "doc-a")

        assert report.stored == 2
        assert report.failed == [1]
        stored = await services.patient_store.all_vectors_for("doc-a")
        assert sorted(c.chunk_index for c in stored) == [0, 2]

    async def test_failed_batch_retried_per_chunk(self, services: AppServices) -> None:
        services.embeddings.fail_on = {"POISON"}
        chunks = _chunks("a", "b", "POISON c")  # one batch of 3 at batch_size=4
        await services.patient_store.store(chunks, "doc-a")
        assert services.embeddings.batch_calls == 1 + 3

    async def test_only_failing_batch_is_retried(self, services: AppServices) -> None:
        services.embeddings.fail_on = {"POISON"}
        chunks = _chunks("a", "b", "c", "d", "e", "POISON f")  # batches of 4 and 2
        report = await services.patient_store.store(chunks, "doc-a")
        assert report.failed == [5]
        assert services.embeddings.batch_calls == 2 + 2

    async def test_unexpected_embedding_error_propagates(
        self, services: AppServices, mocker
    ) -> None:
        mocker.patch.object(
            services.embeddings, "embed_batch", side_effect=RuntimeError("socket closed")
        )
        with pytest.raises(RuntimeError):
            await services.patient_store.store(_chunks("a"), "doc-a")

    async def test_delete_scope(self, services: AppServices) -> None:
        await services.patient_store.store(_chunks("alpha"), "doc-a")
        await services.patient_store.store(_chunks("beta"), "doc-b")
        await services.patient_store.delete_scope("doc-a")
        assert await services.patient_store.all_vectors_for("doc-a") == []
        assert len(await services.patient_store.all_vectors_for("doc-b")) == 1


# --- Knowledge partition ---


class TestKnowledgeBaseStore:
    async def test_store_knowledge_base_chunks(self, services: AppServices) -> None:
        content = "BMI of 30 or more is obesity. " * 20
        report = await services.knowledge_store.store_knowledge_base_chunks(
            content, "Medical Guidelines - Obesity", "obesity", chunk_size=200, overlap=40
        )
        assert report.stored == len(chunk_text(content, 200, 40))
        assert await services.knowledge_store.count() == report.stored

    async def test_candidates_carry_source_and_category(self, services: AppServices) -> None:
        await services.knowledge_store.store(
            _chunks("LDL below 100 mg/dL is optimal"), "Lipid Guide", "cardiovascular"
        )
        (candidate,) = await services.knowledge_store.all_vectors_for(["cardiovascular"])
        assert candidate.source_type == "medical_knowledge"
        assert candidate.source_label == "Lipid Guide"
        assert candidate.category == "cardiovascular"

    async def test_filters_by_category(self, services: AppServices) -> None:
        store = services.knowledge_store
        await store.store(_chunks("obesity text"), "Guide", "obesity")
        await store.store(_chunks("treatment text"), "Guide", "treatment")
        await store.store(_chunks("lab text"), "Guide", "laboratory")

        assert [c.content for c in await store.all_vectors_for(["obesity"])] == ["obesity text"]
        assert len(await store.all_vectors_for(["obesity", "laboratory"])) == 2
        assert len(await store.all_vectors_for()) == 3

    async def test_excludes_categories(self, services: AppServices) -> None:
        store = services.knowledge_store
        await store.store(_chunks("obesity text"), "Guide", "obesity")
        await store.store(_chunks("treatment text"), "Guide", "treatment")

        excluded = await store.all_vectors_for(exclude_categories=["treatment"])
        assert [c.category for c in excluded] == ["obesity"]
        both = await store.all_vectors_for(["treatment"], ["treatment"])
        assert both == []

    async def test_rejects_unknown_category(self, services: AppServices) -> None:
        with pytest.raises(ValidationError):
            await services.knowledge_store.store(_chunks("text"), "Guide", "astrology")

    async def test_partitions_are_separate(self, services: AppServices) -> None:
        await services.knowledge_store.store(_chunks("reference text"), "Guide", "laboratory")
        await services.patient_store.store(_chunks("patient text"), "doc-a")

        patient = await services.patient_store.all_vectors_for("doc-a")
        knowledge = await services.knowledge_store.all_vectors_for()
        assert [c.content for c in patient] == ["patient text"]
        assert [c.content for c in knowledge] == ["reference text"]
