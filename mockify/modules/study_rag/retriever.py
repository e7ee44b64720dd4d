"""
Material Retriever Module
=========================
Semantic search over a user's study materials.

- search_chunks: raw chunk matches above a similarity threshold
- search_materials: chunk matches grouped per material for the search page
- format_context: numbered context block for LLM prompts
"""

import logging
from typing import Any, Dict, List, Optional

from .config import rag_config
from .vectorstore import ChromaVectorStore, ChunkMatch

logger = logging.getLogger(__name__)


def similarity_percent(similarity: float) -> int:
    return round(similarity * 100)


class MaterialRetriever:
    """Retrieve relevant chunks of a user's material"""

    def __init__(self, vector_store: ChromaVectorStore):
        self.vector_store = vector_store

    def search_chunks(
        self,
        query: str,
        user_id: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        material_ids: Optional[List[str]] = None
    ) -> List[ChunkMatch]:
        """
        Retrieve chunk matches for a query.

        Args:
            query: Search query
            user_id: Owner of the materials
            threshold: Minimum similarity (default SEARCH_THRESHOLD)
            limit: Maximum matches (default SEARCH_LIMIT)
            material_ids: Only search these materials

        Returns:
            ChunkMatch list, highest similarity first
        """
        threshold = rag_config.SEARCH_THRESHOLD if threshold is None else threshold
        limit = limit or rag_config.SEARCH_LIMIT

        logger.info(f"Retrieving chunks for query: {query[:100]}...")
        logger.info(f"threshold={threshold}, limit={limit}, materials={material_ids or 'all'}")

        matches = self.vector_store.search(
            query,
            user_id=user_id,
            threshold=threshold,
            limit=limit,
            material_ids=material_ids,
        )

        logger.info(f"Retrieved {len(matches)} chunks")

        if rag_config.ENABLE_DEBUG_LOGGING:
            self._log_retrieved_chunks(matches)

        return matches

    def search_materials(
        self,
        query: str,
        user_id: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Search and group matches by material.

        Fetches limit * SEARCH_FETCH_MULTIPLIER chunks, keeps the best
        similarity per material and the top matched chunks of each.

        Returns:
            List of material groups sorted by best similarity, at most limit
        """
        limit = limit or rag_config.SEARCH_LIMIT
        matches = self.search_chunks(
            query,
            user_id=user_id,
            threshold=threshold,
            limit=limit * rag_config.SEARCH_FETCH_MULTIPLIER,
        )

        groups: Dict[str, Dict[str, Any]] = {}
        for match in matches:
            group = groups.setdefault(match.material_id, {
                "material_id": match.material_id,
                "max_similarity": 0.0,
                "chunks": [],
            })
            group["chunks"].append(match)
            group["max_similarity"] = max(group["max_similarity"], match.similarity)

        ranked = sorted(groups.values(), key=lambda g: g["max_similarity"], reverse=True)

        results = []
        for group in ranked[:limit]:
            chunks = sorted(group["chunks"], key=lambda m: m.similarity, reverse=True)
            results.append({
                "material_id": group["material_id"],
                "similarity": group["max_similarity"],
                "similarity_percent": similarity_percent(group["max_similarity"]),
                "matched_chunks": [
                    {
                        "text": chunk.text,
                        "similarity": chunk.similarity,
                        "similarity_percent": similarity_percent(chunk.similarity),
                        "chunk_index": chunk.chunk_index,
                        "position": chunk.position,
                    }
                    for chunk in chunks[:rag_config.MATCHED_CHUNKS_PER_MATERIAL]
                ],
                "total_matched_chunks": len(chunks),
            })
        return results

    def _log_retrieved_chunks(self, matches: List[ChunkMatch]):
        """Log retrieved chunks for debugging."""
        logger.info("=" * 60)
        logger.info("RETRIEVED CHUNKS:")
        logger.info("=" * 60)

        for i, match in enumerate(matches):
            snippet = match.text[:rag_config.SNIPPET_LENGTH]
            logger.info(
                f"\n[{i+1}] Material: {match.material_topic}, chunk {match.chunk_index}, "
                f"similarity {match.similarity:.3f}"
            )
            logger.info(f"    Snippet: {snippet}...")

        logger.info("=" * 60)

    def format_context(self, matches: List[ChunkMatch]) -> str:
        """
        Format chunk matches into a context string.

        Args:
            matches: Chunk matches, already in the desired order

        Returns:
            Formatted context string
        """
        if not matches:
            return ""

        context_parts = []
        for i, match in enumerate(matches):
            context_parts.append(
                f"[Context {i+1}] ({match.material_topic} - "
                f"{match.similarity * 100:.1f}% relevant)\n{match.text}"
            )

        return "\n\n---\n\n".join(context_parts)
