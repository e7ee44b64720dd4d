"""
Tests for the Chroma vector store and material retriever
"""
import pytest

from conftest import BIOLOGY_NOTES, HISTORY_NOTES
from mockify.modules.study_rag.chunking import chunk_text, chunks_to_documents
from mockify.modules.study_rag.vectorstore import ChunkMatch, build_where

PHOTOSYNTHESIS_QUERY = "photosynthesis chlorophyll chloroplasts glucose oxygen"


def index(vector_store, text, material_id, user_id, topic=""):
    documents = chunks_to_documents(chunk_text(text), material_id, user_id, material_topic=topic)
    return vector_store.add_documents(documents)


@pytest.fixture
def populated(vector_store):
    index(vector_store, BIOLOGY_NOTES, "bio", "alice", topic="Photosynthesis")
    index(vector_store, HISTORY_NOTES, "hist", "alice", topic="French Revolution")
    index(vector_store, BIOLOGY_NOTES, "other-bio", "bob", topic="Photosynthesis")
    return vector_store


class TestBuildWhere:
    """Test cases for metadata filters"""

    def test_user_only(self):
        assert build_where("alice") == {"user_id": "alice"}

    def test_user_and_materials(self):
        assert build_where("alice", ["m1", "m2"]) == {"$and": [
            {"user_id": "alice"},
            {"material_id": {"$in": ["m1", "m2"]}},
        ]}


class TestChromaVectorStore:
    """Test cases for ChromaVectorStore"""

    def test_add_nothing(self, vector_store):
        assert vector_store.add_documents([]) == 0

    def test_search_is_scoped_to_user(self, populated):
        matches = populated.search(PHOTOSYNTHESIS_QUERY, user_id="alice", threshold=0.0, limit=10)

        assert matches
        assert {m.material_id for m in matches} <= {"bio", "hist"}
        assert matches[0].material_id == "bio"
        assert matches[0].material_topic == "Photosynthesis"

    def test_search_respects_threshold(self, populated):
        assert populated.search(PHOTOSYNTHESIS_QUERY, user_id="alice", threshold=0.99, limit=10) == []

    def test_search_material_filter(self, populated):
        matches = populated.search(
            PHOTOSYNTHESIS_QUERY, user_id="alice", threshold=0.0, limit=10, material_ids=["hist"]
        )
        assert matches
        assert all(m.material_id == "hist" for m in matches)

    def test_reindex_overwrites(self, populated):
        """Stable chunk ids mean indexing twice does not duplicate"""
        before = populated.count_user_chunks("alice")
        index(populated, BIOLOGY_NOTES, "bio", "alice", topic="Photosynthesis")
        assert populated.count_user_chunks("alice") == before

    def test_material_chunks_and_delete(self, populated):
        assert populated.get_material_chunks("bio", "alice") == [BIOLOGY_NOTES]
        assert populated.get_material_chunks("bio", "bob") == []

        assert populated.delete_material("bio", "alice") == 1
        assert populated.get_material_chunks("bio", "alice") == []
        assert populated.count_user_chunks("bob") == 1

    def test_collection_stats(self, populated):
        assert populated.get_collection_stats()["total_chunks"] == 3


class TestMaterialRetriever:
    """Test cases for MaterialRetriever"""

    def test_search_materials_groups_by_material(self, populated, retriever):
        results = retriever.search_materials(PHOTOSYNTHESIS_QUERY, user_id="alice", threshold=0.0)

        assert [r["material_id"] for r in results][0] == "bio"
        best = results[0]
        assert best["similarity_percent"] == round(best["similarity"] * 100)
        assert best["total_matched_chunks"] == 1
        assert best["matched_chunks"][0]["text"] == BIOLOGY_NOTES
        assert best["matched_chunks"][0]["position"].startswith("chars 0-")

    def test_search_materials_limit(self, populated, retriever):
        results = retriever.search_materials(PHOTOSYNTHESIS_QUERY, user_id="alice", threshold=0.0, limit=1)
        assert len(results) == 1

    def test_format_context(self, retriever):
        matches = [
            ChunkMatch("m1", 0, "Glucose is made in leaves.", 0.9, {"material_topic": "Plants"}),
            ChunkMatch("m2", 3, "Oxygen is released.", 0.75, {}),
        ]

        context = retriever.format_context(matches)

        assert context.startswith("[Context 1] (Plants - 90.0% relevant)\nGlucose is made in leaves.")
        assert "[Context 2] (Study material - 75.0% relevant)" in context
        assert retriever.format_context([]) == ""
