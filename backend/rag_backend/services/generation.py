"""Generative completion over Gemini: grounded prompt in, answer text out."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from rag_backend.config import Settings

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when the completion call fails; no partial answer is returned."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


@runtime_checkable
class GenerativeService(Protocol):
    async def generate(self, prompt: str) -> str:
        """Return the model's answer for a fully assembled prompt."""
        ...


class GeminiGenerator:
    """Text completion with a Gemini model."""

    def __init__(self, client: genai.Client, settings: Settings) -> None:
        self._client = client
        self.model = settings.generation_model
        self.timeout = settings.generation_timeout_seconds

    async def generate(self, prompt: str) -> str:
        logger.info("Generating answer: model=%s prompt=%d chars", self.model, len(prompt))
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=types.GenerateContentConfig(temperature=0.2),
                ),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise GenerationError(
                code="GENERATION_TIMEOUT",
                message=f"Answer generation exceeded {self.timeout:.0f}s",
            ) from e
        except genai_errors.APIError as e:
            raise GenerationError(
                code="GENERATION_FAILED",
                message=f"Generative model call failed: {e}",
            ) from e

        text = response.text
        if not text or not text.strip():
            raise GenerationError(
                code="EMPTY_ANSWER",
                message="Generative model returned an empty answer",
            )
        logger.info("Generated answer (%d chars)", len(text))
        return text
