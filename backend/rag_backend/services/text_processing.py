"""Text cleanup and overlapping fixed-size chunking."""

from __future__ import annotations

import re

from rag_backend.models.rag import Chunk

_NON_PRINTABLE = re.compile(r"[^\S\n]|[\x00-\x08\x0b-\x1f\x7f]")
_SPACE_RUNS = re.compile(r" {2,}")
_BLANK_LINE_RUNS = re.compile(r"\n{3,}")


def clean_text(text: str) -> str:
    """Normalise PDF-extracted text while keeping its line structure.

    Line-oriented extractors (test results, medications, findings) rely on
    newlines, so only horizontal whitespace is collapsed.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    # Tabs, form feeds and other odd whitespace become plain spaces
    text = _NON_PRINTABLE.sub(" ", text)
    text = _SPACE_RUNS.sub(" ", text)
    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(lines)
    return _BLANK_LINE_RUNS.sub("\n\n", text).strip()


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> list[Chunk]:
    """Split text into windows of ``chunk_size`` characters sharing ``overlap``.

    The window advances by ``chunk_size - overlap``; the final chunk may be
    shorter. Dropping the first ``overlap`` characters of every chunk after
    the first and concatenating the rest gives back ``text``.
    """
    if overlap < 0 or chunk_size <= overlap:
        raise ValueError(
            f"chunk_size must be greater than overlap >= 0 "
            f"(got chunk_size={chunk_size}, overlap={overlap})"
        )
    if not text:
        return []

    step = chunk_size - overlap
    chunks: list[Chunk] = []
    start = 0
    while True:
        end = min(start + chunk_size, len(text))
        chunks.append(
            Chunk(
                index=len(chunks),
                content=text[start:end],
                start_offset=start,
                end_offset=end,
            )
        )
        if end == len(text):
            break
        start += step
    return chunks


def reconstruct_text(chunks: list[Chunk], overlap: int) -> str:
    """Inverse of ``chunk_text`` for chunks produced with the same overlap."""
    if not chunks:
        return ""
    parts = [chunks[0].content]
    parts.extend(chunk.content[overlap:] for chunk in chunks[1:])
    return "".join(parts)
