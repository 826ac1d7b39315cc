"""Unit tests for text cleanup and overlapping chunking."""

from __future__ import annotations

import pytest

from rag_backend.services.text_processing import chunk_text, clean_text, reconstruct_text


class TestCleanText:
    def test_collapses_horizontal_whitespace(self) -> None:
        assert clean_text("BMI:\t31   kg/m2") == "BMI: 31 kg/m2"

    def test_keeps_line_structure(self) -> None:
        text = "HbA1c: 5.4 %\r\nLDL: 142 mg/dL\rHDL: 51 mg/dL"
        assert clean_text(text).split("\n") == [
            "HbA1c: 5.4 %",
            "LDL: 142 mg/dL",
            "HDL: 51 mg/dL",
        ]

    def test_collapses_blank_line_runs(self) -> None:
        assert clean_text("Page 1\n\n\n\n\nPage 2") == "Page 1\n\nPage 2"

    def test_removes_control_characters(self) -> None:
        assert clean_text("Next\x00line\x07 here") == "Next line here"

    def test_strips_each_line(self) -> None:
        assert clean_text("   first  \n  second   ") == "first\nsecond"

    def test_whitespace_only_becomes_empty(self) -> None:
        assert clean_text(" \t\n\n \x0c ") == ""


class TestChunkText:
    def test_window_offsets(self) -> None:
        text = "abcdefghij" * 25
        chunks = chunk_text(text, chunk_size=100, overlap=20)
        assert [(c.start_offset, c.end_offset) for c in chunks] == [
            (0, 100),
            (80, 180),
            (160, 250),
        ]
        assert [c.index for c in chunks] == [0, 1, 2]

    def test_content_matches_offsets(self) -> None:
        text = "The quick brown fox jumps over the lazy dog. " * 12
        for chunk in chunk_text(text, chunk_size=64, overlap=16):
            assert chunk.content == text[chunk.start_offset : chunk.end_offset]

    def test_no_chunk_exceeds_size(self) -> None:
        text = "x" * 1234
        assert all(len(c.content) <= 100 for c in chunk_text(text, 100, 30))

    def test_consecutive_chunks_share_overlap(self) -> None:
        text = "".join(chr(ord("a") + i % 26) for i in range(500))
        chunks = chunk_text(text, chunk_size=120, overlap=25)
        for left, right in zip(chunks, chunks[1:]):
            assert left.content[-25:] == right.content[:25]

    def test_last_chunk_may_be_short(self) -> None:
        chunks = chunk_text("y" * 250, chunk_size=100, overlap=20)
        assert len(chunks[-1].content) == 90

    def test_short_text_is_single_chunk(self) -> None:
        chunks = chunk_text("BMI: 31 kg/m2", chunk_size=1000, overlap=200)
        assert len(chunks) == 1
        assert chunks[0].content == "BMI: 31 kg/m2"
        assert chunks[0].start_offset == 0

    def test_text_of_exactly_chunk_size(self) -> None:
        assert len(chunk_text("z" * 100, chunk_size=100, overlap=20)) == 1

    def test_empty_text(self) -> None:
        assert chunk_text("", chunk_size=100, overlap=20) == []

    def test_zero_overlap(self) -> None:
        chunks = chunk_text("a" * 30, chunk_size=10, overlap=0)
        assert [c.start_offset for c in chunks] == [0, 10, 20]

    @pytest.mark.parametrize(
        ("chunk_size", "overlap"),
        [(100, 100), (100, 150), (100, -1), (0, 0)],
    )
    def test_rejects_invalid_window(self, chunk_size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            chunk_text("some text", chunk_size=chunk_size, overlap=overlap)

    def test_default_window(self) -> None:
        chunks = chunk_text("w" * 2500)
        assert [(c.start_offset, c.end_offset) for c in chunks] == [
            (0, 1000),
            (800, 1800),
            (1600, 2500),
        ]


class TestReconstructText:
    @pytest.mark.parametrize(
        ("length", "chunk_size", "overlap"),
        [(0, 10, 2), (7, 10, 2), (10, 10, 2), (11, 10, 2), (997, 64, 13), (2500, 1000, 200)],
    )
    def test_reconstructs_original(self, length: int, chunk_size: int, overlap: int) -> None:
        text = "".join(chr(ord("A") + i % 26) for i in range(length))
        chunks = chunk_text(text, chunk_size, overlap)
        assert reconstruct_text(chunks, overlap) == text
