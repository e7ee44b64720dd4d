"""
Progress API routes
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mockify.database import get_db
from mockify.dependencies import get_current_user
from mockify.models import User
from mockify.services import progress_service

router = APIRouter()


@router.get("")
def get_progress(
    exam_type: Optional[str] = None,
    topic: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Dashboard analytics: overall stats, topic performance, recent
    scores and the weekly improvement trend
    """
    return progress_service.get_progress(db, user, exam_type=exam_type, topic=topic)
