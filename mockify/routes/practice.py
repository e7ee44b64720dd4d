"""
Adaptive Practice API routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mockify.database import get_db
from mockify.dependencies import get_current_user, get_rag_service
from mockify.models import User
from mockify.modules.study_rag import StudyRAGService
from mockify.schemas import PracticeGenerateRequest, PracticeSubmitRequest
from mockify.services import practice_service

router = APIRouter()


@router.get("/weak-topics")
def get_weak_topics(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Topics the user scores below the weak-topic threshold on,
    highest priority first
    """
    return practice_service.get_weak_topics(db, user)


@router.post("/generate", status_code=201)
def generate_practice(
    request: PracticeGenerateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Generate a practice session targeting the user's weak topics
    """
    return practice_service.generate_practice(db, user, rag, request)


@router.post("/{session_id}/submit")
def submit_practice(
    session_id: str,
    request: PracticeSubmitRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit answers ({question_index: answer}) for a practice session
    """
    return practice_service.submit_practice(db, user, session_id, request)


@router.get("/sessions")
def list_sessions(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    sessions = practice_service.list_sessions(db, user)
    return {"success": True, "sessions": sessions, "total": len(sessions)}
