"""Grounded prompt assembly with patient data and reference data in separate sections."""

from __future__ import annotations

from rag_backend.models.rag import PatientDocument, RetrievalContext, RetrievalResult
from rag_backend.models.schemas import AssembledPrompt, SourceCitation

PATIENT_SECTION = "PATIENT'S DOCUMENT INFORMATION"
ENTITY_SECTION = "RELEVANT MEDICAL ENTITIES FROM PATIENT'S DOCUMENT"
KNOWLEDGE_SECTION = "MEDICAL KNOWLEDGE BASE CONTEXT (reference only)"

NO_PATIENT_DATA = "No specific patient data found related to the query."
NO_KNOWLEDGE = "No specific medical knowledge found for this query."

PREAMBLE = (
    "You are a medical assistant helping a patient understand their medical "
    "documents. Answer from the patient's own document data, using the reference "
    "material only to explain what that data means."
)

CRITICAL_INSTRUCTIONS: tuple[str, ...] = (
    f'Answer ONLY from the patient\'s data in the "{PATIENT_SECTION}" section.',
    f'The "{KNOWLEDGE_SECTION}" section holds population reference ranges and '
    "guidelines. These are NOT the patient's values. Never present a reference "
    "range as the patient's result.",
    "Never invent test values, findings, or medications that are not in the "
    "patient's document.",
    "For medication questions, report only medications listed in the patient's "
    "section. If it says no medications were found, state that plainly and do not "
    "suggest any.",
    "Quote the patient's values exactly as they appear, including units.",
    'Keep "your document shows..." (patient data) distinct from "typical ranges '
    'are..." (reference data).',
    "When abnormal findings are listed, explain their significance and recommend "
    "follow-up with the appropriate clinician.",
)

FORMATTING_INSTRUCTIONS: tuple[str, ...] = (
    "Use markdown with ## headings to organise the answer.",
    "Use bullet points for lists and numbered lists for next steps.",
    "Bold the patient's key values, e.g. **31 kg/m2**.",
    "Use a table when comparing several results with their ranges.",
    'Add "Clinical Significance" and "Recommended Next Steps" sections when '
    "findings are abnormal.",
    "Use clear, patient-friendly language while staying medically accurate.",
)

EXCERPT_CHARS = 200
MAX_PATIENT_SOURCES = 3


def _patient_line(result: RetrievalResult) -> str:
    return f"Document content (similarity: {result.similarity:.3f}): {result.content}"


def _knowledge_line(result: RetrievalResult) -> str:
    category = f" | {result.category}" if result.category else ""
    return f"Reference material [{result.source_label}{category}]: {result.content}"


def _excerpt(text: str) -> str:
    if len(text) <= EXCERPT_CHARS:
        return text
    return text[:EXCERPT_CHARS] + "..."


def _relevant_entities(query: str, document: PatientDocument) -> dict[str, list[str]]:
    lowered = query.lower()
    relevant: dict[str, list[str]] = {}
    for category, entities in document.entities.items():
        matching = [e for e in entities if e.lower() in lowered]
        if matching:
            relevant[category] = matching
    return relevant


def _numbered(items: tuple[str, ...]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def assemble(
    query: str, document: PatientDocument, context: RetrievalContext
) -> AssembledPrompt:
    """Build the grounded prompt and the citation list for one question."""
    patient_lines = [_patient_line(r) for r in context.patient_excerpts]
    patient_lines.extend(context.structured_fallback)
    knowledge_lines = [_knowledge_line(r) for r in context.knowledge_excerpts]

    sections = [
        PREAMBLE,
        f"{PATIENT_SECTION}:\n"
        + ("\n\n".join(patient_lines) if patient_lines else NO_PATIENT_DATA),
    ]

    entities = _relevant_entities(query, document)
    if entities:
        entity_lines = "\n".join(
            f"- {category}: {', '.join(items)}" for category, items in entities.items()
        )
        sections.append(f"{ENTITY_SECTION}:\n{entity_lines}")

    sections.extend(
        [
            f"{KNOWLEDGE_SECTION}:\n"
            + ("\n\n".join(knowledge_lines) if knowledge_lines else NO_KNOWLEDGE),
            "Document metadata:\n"
            f"- Document name: {document.file_name}\n"
            f"- Upload date: {document.upload_date.isoformat()}",
            f"User question: {query}",
            f"CRITICAL INSTRUCTIONS:\n{_numbered(CRITICAL_INSTRUCTIONS)}",
            f"FORMATTING:\n{_numbered(FORMATTING_INSTRUCTIONS)}",
        ]
    )

    sources = [
        SourceCitation(
            id=f"knowledge_{i}",
            excerpt=_excerpt(r.content),
            source=r.source_label,
            category=r.category,
            type="medical_knowledge",
        )
        for i, r in enumerate(context.knowledge_excerpts)
    ]
    patient_sources = [r.content for r in context.patient_excerpts]
    patient_sources.extend(context.structured_fallback)
    sources.extend(
        SourceCitation(
            id=f"patient_doc_{i}",
            excerpt=_excerpt(text),
            source=document.file_name,
            type="patient_document",
        )
        for i, text in enumerate(patient_sources[:MAX_PATIENT_SOURCES])
    )

    return AssembledPrompt(text="\n\n".join(sections), sources=sources)
