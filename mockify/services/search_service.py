"""
Search Service
Semantic search over a user's study materials
"""
import time
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from mockify.core import Messages, ProcessingStatus, BadRequestException, ServiceUnavailableException
from mockify.models import StudyMaterial, User
from mockify.modules.study_rag import EmbeddingError, StudyRAGService
from mockify.schemas import SearchRequest

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


class SearchService:
    """Service for material search"""

    def search(self, db: Session, user: User, rag: StudyRAGService, request: SearchRequest) -> Dict[str, Any]:
        """
        Find the user's materials most relevant to a query.

        Chunks are grouped per material; material rows supply names,
        previews and the optional exam type / topic filters.
        """
        query = request.query.strip()
        if not query:
            raise BadRequestException(Messages.EMPTY_QUERY)

        started = time.perf_counter()
        try:
            groups = rag.search_materials(query, user.id, threshold=request.threshold, limit=request.limit)
        except EmbeddingError as e:
            logger.error(f"Search failed for user {user.id}: {e}")
            raise ServiceUnavailableException("search", Messages.SEARCH_UNAVAILABLE)
        search_ms = (time.perf_counter() - started) * 1000

        materials = {}
        if groups:
            rows = db.query(StudyMaterial).filter(
                StudyMaterial.user_id == user.id,
                StudyMaterial.id.in_([g["material_id"] for g in groups]),
                StudyMaterial.processing_status == ProcessingStatus.COMPLETED.value,
            )
            if request.exam_type:
                rows = rows.filter(StudyMaterial.exam_type == request.exam_type)
            if request.topic:
                rows = rows.filter(StudyMaterial.topic == request.topic)
            materials = {m.id: m for m in rows.all()}

        results = []
        for group in groups:
            material = materials.get(group["material_id"])
            if material is None:
                continue
            text = material.extracted_text or ""
            results.append({
                "id": material.id,
                "topic": material.topic,
                "file_name": material.file_name,
                "file_type": material.file_type,
                "exam_type": material.exam_type,
                "material_type": material.material_type,
                "similarity": group["similarity"],
                "similarity_percent": group["similarity_percent"],
                "matched_chunks": group["matched_chunks"],
                "total_matched_chunks": group["total_matched_chunks"],
                "preview": text[:PREVIEW_LENGTH] + ("..." if len(text) > PREVIEW_LENGTH else ""),
                "created_at": material.created_at,
            })

        total_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Search '{query[:50]}' for {user.id}: {len(results)} materials in {total_ms:.0f}ms")

        return {
            "success": True,
            "query": query,
            "results": results,
            "count": len(results),
            "stats": {
                "search_time_ms": round(search_ms, 2),
                "total_time_ms": round(total_ms, 2),
                "threshold": request.threshold,
                "materials_matched": len(groups),
            },
        }

    def index_status(self, db: Session, user: User, rag: StudyRAGService) -> Dict[str, Any]:
        completed = db.query(StudyMaterial).filter(
            StudyMaterial.user_id == user.id,
            StudyMaterial.processing_status == ProcessingStatus.COMPLETED.value,
        ).count()
        chunks = rag.count_user_chunks(user.id)
        return {
            "success": True,
            "indexed": chunks > 0,
            "indexed_chunks": chunks,
            "completed_materials": completed,
        }


# Singleton instance
search_service = SearchService()
