"""
Tutor Service
Doubt resolution with per-user rate limiting and history
"""
import math
import logging
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mockify.core import (
    Messages,
    DatabaseException,
    NotFoundException,
    RateLimitException,
    generation_logger,
)
from mockify.models import DoubtHistory, User, utcnow
from mockify.modules.study_rag import GenerationError, MaterialReference, StudyRAGService
from mockify.modules.study_rag.config import rag_config
from mockify.schemas import DoubtRequest
from mockify.services.material_service import material_service
from mockify.services.mock_test_service import generation_failed

logger = logging.getLogger(__name__)

FALLBACK_RELEVANCE = 0.8
HISTORY_LIMIT = 10


class TutorService:
    """Service for the AI tutor"""

    def check_rate_limit(self, db: Session, user: User):
        """Raise 429 when the user asked too many doubts in the window"""
        window = rag_config.TUTOR_RATE_WINDOW_SECONDS
        now = utcnow()
        recent = db.query(DoubtHistory.created_at).filter(
            DoubtHistory.user_id == user.id,
            DoubtHistory.created_at >= now - timedelta(seconds=window),
        ).order_by(DoubtHistory.created_at.asc()).all()

        if len(recent) >= rag_config.TUTOR_RATE_LIMIT:
            oldest = recent[0].created_at
            retry_after = max(1, math.ceil(window - (now - oldest).total_seconds()))
            logger.warning(f"Tutor rate limit hit by {user.id}, retry in {retry_after}s")
            raise RateLimitException(Messages.TUTOR_RATE_LIMITED, retry_after=retry_after)

    def fallback_references(self, db: Session, user: User) -> List[MaterialReference]:
        return [
            MaterialReference(
                material_id=material.id,
                content=material.extracted_text[:rag_config.TUTOR_REFERENCE_CHARS],
                source=material.topic or material.file_name,
                relevance_score=FALLBACK_RELEVANCE,
            )
            for material in material_service.newest_completed(db, user, limit=rag_config.TUTOR_MAX_REFERENCES)
        ]

    def resolve_doubt(self, db: Session, user: User, rag: StudyRAGService, request: DoubtRequest) -> Dict[str, Any]:
        """
        Answer a doubt about a question and record the exchange.

        Raises:
            RateLimitException: too many doubts in the window
            ServiceUnavailableException: the LLM failed
        """
        self.check_rate_limit(db, user)

        try:
            resolution = rag.resolve_doubt(
                user_id=user.id,
                question_text=request.question_text,
                options=request.options,
                correct_answer=request.correct_answer,
                doubt_text=request.doubt_text,
                user_answer=request.user_answer,
                topic=request.topic,
                history=[m.model_dump(mode="json") for m in request.history],
                fallback_references=self.fallback_references(db, user),
            )
        except GenerationError as e:
            generation_logger.error(f"Doubt resolution failed for {user.id}: {e}")
            raise generation_failed(e)

        doubt = DoubtHistory(
            user_id=user.id,
            question_text=request.question_text,
            doubt_text=request.doubt_text,
            explanation=resolution.explanation,
            confidence=resolution.confidence,
        )
        try:
            db.add(doubt)
            db.commit()
            db.refresh(doubt)
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("saving doubt", str(e))

        return {
            "success": True,
            "doubt_id": doubt.id,
            "explanation": resolution.explanation,
            "confidence": resolution.confidence,
            "references": [ref.to_dict() for ref in resolution.references],
        }

    def get_history(self, db: Session, user: User) -> List[Dict[str, Any]]:
        doubts = db.query(DoubtHistory).filter(
            DoubtHistory.user_id == user.id
        ).order_by(DoubtHistory.created_at.desc()).limit(HISTORY_LIMIT).all()

        return [
            {
                "id": d.id,
                "question_text": d.question_text,
                "doubt_text": d.doubt_text,
                "explanation": d.explanation,
                "confidence": d.confidence,
                "was_helpful": d.was_helpful,
                "created_at": d.created_at,
            }
            for d in doubts
        ]

    def record_feedback(self, db: Session, user: User, doubt_id: str, was_helpful: bool) -> Dict[str, Any]:
        doubt = db.query(DoubtHistory).filter(
            DoubtHistory.id == doubt_id,
            DoubtHistory.user_id == user.id,
        ).first()
        if not doubt:
            raise NotFoundException("Doubt", doubt_id)

        doubt.was_helpful = was_helpful
        db.commit()
        return {"success": True, "id": doubt.id, "was_helpful": was_helpful}


# Singleton instance
tutor_service = TutorService()
