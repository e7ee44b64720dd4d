"""
AI Tutor API routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mockify.database import get_db
from mockify.dependencies import get_current_user, get_rag_service
from mockify.models import User
from mockify.modules.study_rag import StudyRAGService
from mockify.schemas import DoubtFeedback, DoubtRequest
from mockify.services import tutor_service

router = APIRouter()


@router.post("/doubt")
def resolve_doubt(
    request: DoubtRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Ask the tutor about a question.

    Answers draw on the user's own study material when it is relevant.
    Limited to a few doubts per minute per user.
    """
    return tutor_service.resolve_doubt(db, user, rag, request)


@router.get("/history")
def get_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    history = tutor_service.get_history(db, user)
    return {"success": True, "history": history, "total": len(history)}


@router.post("/history/{doubt_id}/feedback")
def record_feedback(
    doubt_id: str,
    feedback: DoubtFeedback,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return tutor_service.record_feedback(db, user, doubt_id, feedback.was_helpful)
