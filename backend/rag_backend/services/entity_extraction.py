"""Medical entity extraction: a local lexicon matcher or a remote Gemini call.

One implementation is chosen at startup from ``settings.entity_extractor``;
callers only see the ``EntityExtractor`` protocol.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Protocol, runtime_checkable

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from rag_backend.config import Settings

logger = logging.getLogger(__name__)

Entities = dict[str, list[str]]

MEDICAL_LEXICON: dict[str, tuple[str, ...]] = {
    "cardiovascular_diseases": (
        "heart failure", "HFpEF", "HFrEF", "coronary artery disease",
        "atrial fibrillation", "aortic stenosis", "AV Stenosis",
        "diastolic dysfunction", "cardiomyopathy", "hypertension",
    ),
    "cardiovascular_medications": (
        "metoprolol", "carvedilol", "lisinopril", "losartan", "amlodipine",
        "atorvastatin", "rosuvastatin", "furosemide", "warfarin", "apixaban",
        "aspirin", "clopidogrel",
    ),
    "diabetes_medications": ("metformin", "insulin", "empagliflozin", "semaglutide"),
    "lab_tests": (
        "HbA1c", "glucose", "LDL", "HDL", "triglycerides", "total cholesterol",
        "creatinine", "eGFR", "BNP", "NT-proBNP", "troponin", "hs-CRP",
        "potassium", "sodium", "hemoglobin",
    ),
    "vital_signs": ("blood pressure", "heart rate", "pulse", "BMI", "SpO2"),
    "cardiac_procedures": (
        "echocardiography", "echocardiogram", "ECG", "EKG", "MCG", "PCG",
        "stress test", "catheterization",
    ),
    "cardiac_symptoms": (
        "chest pain", "shortness of breath", "dyspnea", "palpitations",
        "syncope", "edema", "fatigue",
    ),
    "risk_factors": ("diabetes", "obesity", "smoking", "family history", "dyslipidemia"),
}

GEMINI_ENTITY_PROMPT = """\
Extract medical entities from the text below and group them by category.
Return a JSON object whose keys are category names and whose values are
arrays of strings, copied verbatim from the text. Use only these categories:
{categories}
Omit categories with no entities.

Text:
{text}
"""


@runtime_checkable
class EntityExtractor(Protocol):
    async def extract(self, text: str) -> Entities:
        """Entities grouped by category; ``{}`` when nothing could be extracted."""
        ...


class LexiconEntityExtractor:
    """Local extractor: case-insensitive, word-bounded vocabulary matching."""

    def __init__(self, lexicon: dict[str, tuple[str, ...]] = MEDICAL_LEXICON) -> None:
        self._patterns = {
            category: [
                (term, re.compile(rf"(?<!\w){re.escape(term)}(?!\w)", re.IGNORECASE))
                for term in terms
            ]
            for category, terms in lexicon.items()
        }

    async def extract(self, text: str) -> Entities:
        entities: Entities = {}
        for category, patterns in self._patterns.items():
            found = [term for term, pattern in patterns if pattern.search(text)]
            if found:
                entities[category] = found
        logger.info(
            "Lexicon extraction: %d categories, %d entities",
            len(entities),
            sum(len(v) for v in entities.values()),
        )
        return entities


def _parse_entities(raw: str) -> Entities:
    """Pull the first JSON object out of a model response and keep string lists."""
    match = re.search(r"\{.*\}", raw, re.DOTALL)
    if not match:
        return {}
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        return {}
    return {
        str(category): [str(item) for item in items]
        for category, items in data.items()
        if isinstance(items, list) and items
    }


class GeminiEntityExtractor:
    """Remote extractor: asks a Gemini model for categorised entities as JSON."""

    max_chars = 30_000

    def __init__(self, client: genai.Client, settings: Settings) -> None:
        self._client = client
        self.model = settings.generation_model
        self.timeout = settings.generation_timeout_seconds

    async def extract(self, text: str) -> Entities:
        truncated = text[: self.max_chars]
        prompt = GEMINI_ENTITY_PROMPT.format(
            categories=", ".join(MEDICAL_LEXICON), text=truncated
        )
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=types.GenerateContentConfig(
                        response_mime_type="application/json",
                        temperature=0.0,
                    ),
                ),
                timeout=self.timeout,
            )
            entities = _parse_entities(response.text or "")
        except (TimeoutError, genai_errors.APIError, json.JSONDecodeError) as e:
            logger.warning("Gemini entity extraction failed: %s", e)
            return {}
        logger.info("Gemini extraction: %d categories", len(entities))
        return entities


def create_entity_extractor(settings: Settings, client: genai.Client) -> EntityExtractor:
    if settings.entity_extractor == "gemini":
        return GeminiEntityExtractor(client, settings)
    return LexiconEntityExtractor()
