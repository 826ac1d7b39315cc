"""Test fixtures and configuration."""

from __future__ import annotations

import re
import zlib
from collections.abc import AsyncIterator, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncSession

from rag_backend.config import Settings
from rag_backend.database import Database
from rag_backend.dependencies import AppServices
from rag_backend.knowledge.medical_knowledge import KNOWLEDGE_SOURCES
from rag_backend.main import app
from rag_backend.models.rag import EmbeddingVector, PatientDocument
from rag_backend.services.embeddings import EmbeddingError
from rag_backend.services.entity_extraction import LexiconEntityExtractor
from rag_backend.services.generation import GenerationError

REPORT_LINES = [
    "Cardiac Screening Report",
    "Patient: Jane Doe",
    "Date of exam: 2024-03-02",
    "BMI: 31.2 kg/m2 (Normal range: 18.5-24.9, Status: High)",
    "HbA1c: 5.4 % (Normal: <5.7)",
    "LDL Cholesterol: 142 mg/dL (Reference range: <100)",
    "Blood pressure 128/82 mmHg at rest.",
    "MCG Summary: ABNORMAL",
    "HFpEF-score: 4",
    "Impaired Relaxation noted on Doppler.",
    "AV Stenosis (AS): Abnormal",
    "Current medications: none reported.",
]
REPORT_TEXT = "\n".join(REPORT_LINES)

MEDICATED_REPORT_TEXT = "\n".join(
    [
        "Diabetes Follow-up",
        "HbA1c: 7.9 % (Normal: <5.7)",
        "Fasting glucose: 142 mg/dL (Normal range: 70-100)",
        "Current medications: Metformin 500 mg twice daily, Atorvastatin 20 mg",
    ]
)

_TOKEN = re.compile(r"[a-z0-9]+")


class FakeEmbeddings:
    """Deterministic bag-of-words vectors; texts sharing words score higher."""

    dimensions = 64

    def __init__(self) -> None:
        self.fail_on: set[str] = set()
        self.fail_queries = False
        self.batch_calls = 0

    def _vectorize(self, text: str) -> EmbeddingVector:
        vector = [0.0] * self.dimensions
        # Constant component keeps every vector non-zero
        vector[0] = 1.0
        for token in _TOKEN.findall(text.lower()):
            vector[1 + zlib.crc32(token.encode()) % (self.dimensions - 1)] += 1.0
        return vector

    async def embed(self, text: str) -> EmbeddingVector:
        if self.fail_queries:
            raise EmbeddingError("EMBEDDING_FAILED", "query embedding unavailable")
        return self._vectorize(text)

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingVector]:
        self.batch_calls += 1
        if any(marker in text for text in texts for marker in self.fail_on):
            raise EmbeddingError("EMBEDDING_FAILED", "batch rejected")
        return [self._vectorize(t) for t in texts]


class FakeGenerator:
    """Records prompts and returns a canned answer (or raises ``error``)."""

    def __init__(self) -> None:
        self.answer = "Your document shows a BMI of **31.2 kg/m2**."
        self.error: GenerationError | None = None
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(lines: list[str]) -> bytes:
    """A one-page PDF with each line drawn in Helvetica, top to bottom."""
    ops = ["BT", "/F1 11 Tf", "72 740 Td"]
    for line in lines:
        ops.append(f"({_pdf_escape(line)}) Tj")
        ops.append("0 -16 Td")
    ops.append("ET")
    stream = "\n".join(ops).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_offset,
    )
    return bytes(out)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        google_api_key="",
        embedding_dimensions=FakeEmbeddings.dimensions,
        embedding_batch_size=4,
        chunk_size=200,
        chunk_overlap=40,
        max_upload_bytes=50_000,
    )


@pytest.fixture
def embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
async def services(
    test_settings: Settings, embeddings: FakeEmbeddings, generator: FakeGenerator
) -> AsyncIterator[AppServices]:
    """Fresh SQLite database and in-memory Qdrant per test, wired into the app."""
    svc = AppServices.build(
        test_settings,
        database=Database("sqlite+aiosqlite://"),
        qdrant=AsyncQdrantClient(location=":memory:"),
        embeddings=embeddings,
        generator=generator,
        entity_extractor=LexiconEntityExtractor(),
    )
    await svc.startup()
    app.state.services = svc
    yield svc
    await svc.shutdown()


@pytest.fixture
async def session(services: AppServices) -> AsyncIterator[AsyncSession]:
    async with services.database.session() as s:
        yield s


@pytest.fixture
async def client(services: AppServices) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_pdf() -> Callable[[list[str]], bytes]:
    return build_pdf


@pytest.fixture
def report_pdf() -> bytes:
    return build_pdf(REPORT_LINES)


@pytest.fixture
async def report_document(services: AppServices, session: AsyncSession) -> PatientDocument:
    """The screening report, ingested with vectors."""
    return await services.ingestion.ingest_text(session, "screening.pdf", REPORT_TEXT)


@pytest.fixture
async def medicated_document(services: AppServices, session: AsyncSession) -> PatientDocument:
    return await services.ingestion.ingest_text(session, "diabetes.pdf", MEDICATED_REPORT_TEXT)


@pytest.fixture
async def seed_knowledge(services: AppServices) -> None:
    for entry in KNOWLEDGE_SOURCES:
        await services.knowledge_store.store_knowledge_base_chunks(
            entry.content, entry.source, entry.category, chunk_size=400, overlap=80
        )
