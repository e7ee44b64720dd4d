"""
Practice Service
Weak-topic analysis and adaptive practice sessions
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mockify.core import (
    Messages,
    Priority,
    TestStatus,
    ConflictException,
    DatabaseException,
    NotFoundException,
    generation_logger,
)
from mockify.models import PracticeSession, TestResult, User, utcnow
from mockify.modules.study_rag import EmbeddingError, GenerationError, StudyRAGService, WeakTopic, analyze_weak_topics
from mockify.modules.study_rag.adaptive import (
    aggregate_topic_results,
    generate_practice_tips,
    grade_practice_session,
    summarize_weak_topics,
)
from mockify.modules.study_rag.config import rag_config
from mockify.schemas import PracticeGenerateRequest, PracticeSubmitRequest
from mockify.services.material_service import material_service
from mockify.services.mock_test_service import generation_failed

logger = logging.getLogger(__name__)

GENERAL_RECOMMENDATIONS = [
    "Take a full-length mock test to find new areas to work on.",
    "Try harder difficulty levels to keep challenging yourself.",
    "Upload more study material to broaden your practice.",
]


class PracticeService:
    """Service for adaptive practice"""

    def recent_history(self, db: Session, user: User) -> List[Dict[str, Dict[str, int]]]:
        """Per-topic results of the user's most recent graded tests and practice sessions"""
        limit = rag_config.WEAK_TOPIC_HISTORY

        results = db.query(TestResult).filter(
            TestResult.user_id == user.id
        ).order_by(TestResult.completed_at.desc()).limit(limit).all()
        sessions = db.query(PracticeSession).filter(
            PracticeSession.user_id == user.id,
            PracticeSession.status == TestStatus.COMPLETED.value,
        ).order_by(PracticeSession.completed_at.desc()).limit(limit).all()

        records = [(r.completed_at, (r.analytics or {}).get("topic_performance") or {}) for r in results]
        records += [(s.completed_at, s.topic_results or {}) for s in sessions]
        records.sort(key=lambda record: record[0], reverse=True)
        return [topics for _, topics in records[:limit]]

    def get_weak_topics(self, db: Session, user: User) -> Dict[str, Any]:
        weak_topics = analyze_weak_topics(self.recent_history(db, user))

        if not weak_topics:
            return {
                "success": True,
                "weak_topics": [],
                "message": Messages.NO_WEAK_TOPICS,
                "recommendations": GENERAL_RECOMMENDATIONS,
            }

        return {
            "success": True,
            "weak_topics": [w.to_dict() for w in weak_topics],
            "summary": summarize_weak_topics(weak_topics),
        }

    def _requested_targets(self, history: List[Dict[str, Dict[str, int]]], topics: Sequence[str]) -> List[WeakTopic]:
        """Targets for explicitly requested topics, weak or not"""
        weak_by_topic = {w.topic: w for w in analyze_weak_topics(history)}
        totals = aggregate_topic_results(history)

        targets = []
        for topic in topics:
            if topic in weak_by_topic:
                targets.append(weak_by_topic[topic])
                continue
            result = totals.get(topic, {"correct": 0, "total": 0})
            score = round(result["correct"] / result["total"] * 100) if result["total"] else 0
            targets.append(WeakTopic(
                topic=topic,
                score=score,
                questions_attempted=result["total"],
                priority=Priority.MEDIUM.value,
                suggested_difficulty="medium",
            ))
        return targets

    def material_context(self, db: Session, user: User, rag: StudyRAGService, topic: str) -> str:
        """Up to ADAPTIVE_CONTEXT_CHARS of the user's material about a topic"""
        max_chars = rag_config.ADAPTIVE_CONTEXT_CHARS
        try:
            matches = rag.search_chunks(topic, user.id, threshold=rag_config.GENERATION_THRESHOLD, limit=5)
        except EmbeddingError as e:
            logger.warning(f"Practice context search failed: {e}")
            matches = []

        context = "\n\n".join(m.text for m in matches)[:max_chars]
        if context:
            return context

        parts = []
        for material in material_service.newest_completed(db, user, limit=3):
            parts.append(material.extracted_text[:rag_config.ADAPTIVE_CONTEXT_PER_MATERIAL])
        return "\n\n".join(parts)[:max_chars]

    def generate_practice(
        self,
        db: Session,
        user: User,
        rag: StudyRAGService,
        request: PracticeGenerateRequest
    ) -> Dict[str, Any]:
        """
        Create a practice session targeting the user's weakest topics.

        Raises:
            ServiceUnavailableException: the LLM could not produce questions
        """
        history = self.recent_history(db, user)
        if request.topics:
            targets = self._requested_targets(history, request.topics)
        else:
            targets = analyze_weak_topics(history)
        targets = targets[:rag_config.ADAPTIVE_TARGET_TOPICS]

        if not targets:
            return {
                "success": True,
                "session_id": None,
                "weak_topics": [],
                "questions": [],
                "tips": [],
                "message": Messages.NO_WEAK_TOPICS,
            }

        context = self.material_context(db, user, rag, targets[0].topic)
        generation_logger.info(
            f"User {user.id} practice on {[t.topic for t in targets]} with {len(context)} chars of context"
        )

        try:
            questions = rag.generate_practice_questions(
                targets,
                question_count=request.question_count,
                exam_type=request.exam_type,
                material_context=context,
            )
        except GenerationError as e:
            generation_logger.error(f"Practice generation failed for {user.id}: {e}")
            raise generation_failed(e)

        session = PracticeSession(
            user_id=user.id,
            exam_type=request.exam_type,
            weak_topics=[t.to_dict() for t in targets],
            questions=questions,
            questions_count=len(questions),
            status=TestStatus.GENERATED.value,
        )
        try:
            db.add(session)
            db.commit()
            db.refresh(session)
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("saving practice session", str(e))

        return {
            "success": True,
            "session_id": session.id,
            "weak_topics": session.weak_topics,
            "questions": questions,
            "tips": generate_practice_tips(targets),
            "message": f"Generated {len(questions)} practice questions",
        }

    def get_session(self, db: Session, user: User, session_id: str) -> PracticeSession:
        session = db.query(PracticeSession).filter(
            PracticeSession.id == session_id,
            PracticeSession.user_id == user.id,
        ).first()
        if not session:
            raise NotFoundException("Practice session", session_id)
        return session

    def submit_practice(
        self,
        db: Session,
        user: User,
        session_id: str,
        request: PracticeSubmitRequest
    ) -> Dict[str, Any]:
        session = self.get_session(db, user, session_id)
        if session.status == TestStatus.COMPLETED.value:
            raise ConflictException(Messages.SESSION_ALREADY_SUBMITTED)

        graded = grade_practice_session(session.questions or [], request.answers, session.weak_topics or [])

        session.status = TestStatus.COMPLETED.value
        session.score = graded["score"]
        session.topic_results = graded["topic_results"]
        session.improvement = graded["improvement"]
        session.completed_at = utcnow()
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("saving practice result", str(e))

        logger.info(f"Practice session {session.id} submitted by {user.id}: {graded['score']}%")

        message = Messages.PRACTICE_GREAT if graded["score"] >= rag_config.WEAK_TOPIC_THRESHOLD \
            else Messages.PRACTICE_KEEP_GOING
        return {"success": True, "session_id": session.id, "message": message, **graded}

    def list_sessions(self, db: Session, user: User, limit: Optional[int] = 20) -> List[Dict[str, Any]]:
        sessions = db.query(PracticeSession).filter(
            PracticeSession.user_id == user.id
        ).order_by(PracticeSession.created_at.desc()).limit(limit).all()

        return [
            {
                "session_id": s.id,
                "exam_type": s.exam_type,
                "weak_topics": [w["topic"] for w in (s.weak_topics or [])],
                "questions_count": s.questions_count,
                "status": s.status,
                "score": s.score,
                "improvement": s.improvement,
                "created_at": s.created_at,
                "completed_at": s.completed_at,
            }
            for s in sessions
        ]


# Singleton instance
practice_service = PracticeService()
