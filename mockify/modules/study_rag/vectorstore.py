"""
Vector Store Module
===================
ChromaDB store for study material chunks.

Every chunk carries its owner's user_id and material_id in metadata and
every query is filtered by user_id, so users only ever see their own
material. The collection uses cosine space so similarity = 1 - distance.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_chroma import Chroma

from .config import rag_config

logger = logging.getLogger(__name__)


@dataclass
class ChunkMatch:
    """A stored chunk matched by a similarity search"""
    material_id: str
    chunk_index: int
    text: str
    similarity: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def material_topic(self) -> str:
        return self.metadata.get("material_topic") or self.metadata.get("material_name") or "Study material"

    @property
    def position(self) -> str:
        return f"chars {self.metadata.get('start_char', 0)}-{self.metadata.get('end_char', 0)}"


def build_where(user_id: str, material_ids: Optional[List[str]] = None) -> Dict[str, Any]:
    """Chroma metadata filter scoped to a user and optionally to materials"""
    if not material_ids:
        return {"user_id": user_id}
    return {"$and": [
        {"user_id": user_id},
        {"material_id": {"$in": list(material_ids)}},
    ]}


class ChromaVectorStore:
    """
    ChromaDB vector store with persistent storage.

    Features:
    - Persistent storage to disk (in-memory when persist_directory is None)
    - Stable chunk ids so re-indexing overwrites
    - Per-user filtering on every read
    """

    def __init__(
        self,
        embeddings: Embeddings,
        persist_directory: Optional[str] = rag_config.PERSIST_DIRECTORY,
        collection_name: Optional[str] = None
    ):
        """
        Initialize ChromaDB vector store.

        Args:
            embeddings: Embeddings used for documents and queries
            persist_directory: Directory for persistent storage, None for in-memory
            collection_name: Name of the collection
        """
        self.embeddings = embeddings
        self.persist_directory = persist_directory
        self.collection_name = collection_name or rag_config.COLLECTION_NAME

        if self.persist_directory:
            Path(self.persist_directory).mkdir(parents=True, exist_ok=True)
            logger.info(f"Loading vector store from: {self.persist_directory}")

        self._vector_store = Chroma(
            collection_name=self.collection_name,
            embedding_function=self.embeddings,
            persist_directory=self.persist_directory,
            collection_metadata={"hnsw:space": "cosine"},
        )

    def add_documents(self, documents: List[Document]) -> int:
        """
        Add chunk documents to the vector store.

        Args:
            documents: Documents built by chunks_to_documents

        Returns:
            Number of documents added
        """
        if not documents:
            logger.warning("No documents to add")
            return 0

        ids = [doc.metadata["doc_id"] for doc in documents]
        logger.info(f"Adding {len(documents)} chunks to vector store")
        self._vector_store.add_documents(documents=documents, ids=ids)
        return len(documents)

    def search(
        self,
        query: str,
        user_id: str,
        threshold: float,
        limit: int,
        material_ids: Optional[List[str]] = None
    ) -> List[ChunkMatch]:
        """
        Similarity search over one user's chunks.

        Args:
            query: Natural language query
            user_id: Owner whose chunks are searched
            threshold: Minimum similarity (0-1)
            limit: Maximum matches to return
            material_ids: Restrict to these materials

        Returns:
            ChunkMatch list, highest similarity first
        """
        results = self._vector_store.similarity_search_with_score(
            query,
            k=limit,
            filter=build_where(user_id, material_ids),
        )

        matches = []
        for doc, distance in results:
            similarity = 1.0 - float(distance)
            if similarity < threshold:
                continue
            matches.append(ChunkMatch(
                material_id=doc.metadata.get("material_id", ""),
                chunk_index=int(doc.metadata.get("chunk_index", 0)),
                text=doc.page_content,
                similarity=similarity,
                metadata=dict(doc.metadata),
            ))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches

    def get_material_chunks(self, material_id: str, user_id: str, limit: Optional[int] = None) -> List[str]:
        """Chunk texts of one material in document order"""
        result = self._vector_store.get(
            where=build_where(user_id, [material_id]),
            include=["documents", "metadatas"],
        )
        pairs = sorted(
            zip(result.get("metadatas") or [], result.get("documents") or []),
            key=lambda pair: (pair[0] or {}).get("chunk_index", 0),
        )
        texts = [text for _, text in pairs]
        return texts[:limit] if limit else texts

    def count_user_chunks(self, user_id: str) -> int:
        result = self._vector_store.get(where={"user_id": user_id}, include=["metadatas"])
        return len(result.get("ids") or [])

    def delete_material(self, material_id: str, user_id: str) -> int:
        """Remove every chunk of a material, returns how many were removed"""
        result = self._vector_store.get(
            where=build_where(user_id, [material_id]),
            include=["metadatas"],
        )
        ids = result.get("ids") or []
        if ids:
            self._vector_store.delete(ids=ids)
            logger.info(f"Deleted {len(ids)} chunks of material {material_id}")
        return len(ids)

    def get_collection_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the collection.

        Returns:
            Dictionary with collection statistics
        """
        stats = {
            "persist_directory": self.persist_directory,
            "collection_name": self.collection_name,
            "total_chunks": 0
        }

        try:
            stats["total_chunks"] = self._vector_store._collection.count()
        except Exception as e:
            logger.warning(f"Could not get collection count: {e}")

        return stats

    @property
    def vector_store(self) -> Chroma:
        """Get the underlying Chroma vector store."""
        return self._vector_store
