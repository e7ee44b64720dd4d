"""
Unit tests for document chunking
"""
import pytest

from mockify.modules.study_rag.chunking import (
    chunk_text,
    chunks_to_documents,
    get_adaptive_strategy,
    sanitize_chunk_text,
    split_into_chunks,
)

SENTENCE = "Cells are the basic unit of life and every organism is made of one or more cells. "


class TestAdaptiveStrategy:
    """Test cases for strategy selection"""

    def test_short_documents_get_large_chunks(self):
        assert get_adaptive_strategy(1200) == "LARGE"

    def test_medium_documents(self):
        assert get_adaptive_strategy(20000) == "MEDIUM"

    def test_long_documents_get_small_chunks(self):
        assert get_adaptive_strategy(80000) == "SMALL"


class TestSplitIntoChunks:
    """Test cases for the splitter"""

    def test_indices_are_contiguous(self):
        text = SENTENCE * 40
        chunks = split_into_chunks(text, chunk_size=500, chunk_overlap=100)

        assert len(chunks) > 1
        assert [chunk.index for chunk in chunks] == list(range(len(chunks)))

    def test_offsets_point_into_text(self):
        """start_char and end_char locate the chunk in the source"""
        text = SENTENCE * 40
        chunks = split_into_chunks(text, chunk_size=500, chunk_overlap=100)

        for chunk in chunks:
            assert 0 <= chunk.start_char < chunk.end_char <= len(text)
            assert chunk.char_count == len(chunk.text)
            assert chunk.char_count <= 500
            assert chunk.word_count == len(chunk.text.split())

    def test_overlap_must_be_smaller(self):
        with pytest.raises(ValueError):
            split_into_chunks(SENTENCE * 10, chunk_size=100, chunk_overlap=100)


class TestChunkText:
    """Test cases for chunk_text"""

    def test_short_text_is_one_chunk(self):
        text = SENTENCE * 3
        chunks = chunk_text(text)

        assert len(chunks) == 1
        assert chunks[0].text == text.strip()

    def test_explicit_strategy(self):
        chunks = chunk_text(SENTENCE * 40, strategy="small")
        assert all(chunk.char_count <= 500 for chunk in chunks)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown chunk strategy"):
            chunk_text(SENTENCE * 5, strategy="HUGE")

    def test_text_too_short(self):
        with pytest.raises(ValueError, match="too short"):
            chunk_text("Tiny note.")


class TestChunksToDocuments:
    """Test cases for vector store documents"""

    def test_metadata_and_doc_ids(self):
        chunks = chunk_text(SENTENCE * 40, strategy="SMALL")
        documents = chunks_to_documents(chunks, "mat-1", "user-1", material_topic="Cells")

        assert [doc.metadata["doc_id"] for doc in documents] == [
            f"mat-1_{i}" for i in range(len(chunks))
        ]
        first = documents[0].metadata
        assert first["material_id"] == "mat-1"
        assert first["user_id"] == "user-1"
        assert first["material_topic"] == "Cells"
        assert first["material_name"] == ""

    def test_sanitize_keeps_newlines(self):
        assert sanitize_chunk_text("line one\r\nline\x00 two  ") == "line one\nline two"
