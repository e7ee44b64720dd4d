"""
Tests for the doubt resolver
"""
import pytest

from conftest import BIOLOGY_NOTES, FakeLLM
from mockify.modules.study_rag.chunking import chunk_text, chunks_to_documents
from mockify.modules.study_rag.question_generator import GenerationError
from mockify.modules.study_rag.tutor import (
    DoubtResolver,
    MaterialReference,
    confidence_for,
    format_history,
    format_options,
)

OPTIONS = ["Chloroplast", "Nucleus", "Ribosome", "Vacuole"]


def resolve(resolver, **kwargs):
    params = {
        "user_id": "alice",
        "question_text": "Where does photosynthesis happen in chloroplasts or elsewhere?",
        "options": OPTIONS,
        "correct_answer": "A",
        "doubt_text": "Why not the nucleus?",
        "user_answer": "B",
        "topic": "Photosynthesis",
    }
    params.update(kwargs)
    return resolver.resolve(**params)


class TestHelpers:
    """Test cases for prompt helpers"""

    def test_confidence(self):
        assert confidence_for(3) == "high"
        assert confidence_for(1) == "medium"
        assert confidence_for(0) == "low"

    def test_options_are_lettered(self):
        assert format_options(OPTIONS) == "A) Chloroplast\nB) Nucleus\nC) Ribosome\nD) Vacuole"

    def test_history_keeps_recent_turns(self):
        history = [{"role": "user", "content": f"turn {i}"} for i in range(8)]
        text = format_history(history)

        assert text.startswith("PREVIOUS CONVERSATION:\nUSER: turn 2")
        assert "turn 1\n" not in text
        assert format_history(None) == ""


class TestDoubtResolver:
    """Test cases for DoubtResolver"""

    def test_uses_matching_material(self, retriever, vector_store):
        vector_store.add_documents(
            chunks_to_documents(chunk_text(BIOLOGY_NOTES), "bio", "alice", "Photosynthesis")
        )
        llm = FakeLLM(["  Photosynthesis happens in the chloroplast.  "])
        resolver = DoubtResolver(retriever, llm)

        resolution = resolve(resolver, question_text=BIOLOGY_NOTES)

        assert resolution.explanation == "Photosynthesis happens in the chloroplast."
        assert resolution.confidence == "medium"
        assert resolution.references[0].material_id == "bio"
        prompt = llm.last_prompt()
        assert "A) Chloroplast" in prompt
        assert "STUDENT'S ANSWER: B" in prompt
        assert "[Photosynthesis]" in prompt

    def test_fallback_references(self, retriever):
        llm = FakeLLM(["Because chloroplasts hold chlorophyll."])
        fallback = [
            MaterialReference("m1", "Plants make food.", "Botany", 0.8),
            MaterialReference("m2", "Leaves are green.", "Botany", 0.8),
        ]

        resolution = resolve(DoubtResolver(retriever, llm), fallback_references=fallback)

        assert resolution.confidence == "high"
        assert [ref.material_id for ref in resolution.references] == ["m1", "m2"]
        assert resolution.references[0].to_dict()["relevance_score"] == 0.8

    def test_no_material(self, retriever):
        llm = FakeLLM(["Explanation"])
        resolution = resolve(DoubtResolver(retriever, llm), user_answer=None)

        assert resolution.confidence == "low"
        assert resolution.references == []
        prompt = llm.last_prompt()
        assert "No study material available for this question." in prompt
        assert "STUDENT'S ANSWER: Not answered" in prompt

    def test_llm_failure(self, retriever):
        resolver = DoubtResolver(retriever, FakeLLM(error=RuntimeError("model not found")))
        with pytest.raises(GenerationError):
            resolve(resolver)
