"""
Search API routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mockify.database import get_db
from mockify.dependencies import get_current_user, get_rag_service
from mockify.models import User
from mockify.modules.study_rag import StudyRAGService
from mockify.schemas import SearchRequest, SearchResponse
from mockify.services import search_service

router = APIRouter()


@router.post("", response_model=SearchResponse)
def search_materials(
    request: SearchRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Semantic search over the user's study materials.

    Results are grouped per material with the best matching chunks.
    """
    return search_service.search(db, user, rag, request)


@router.get("/status")
def search_status(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Whether the user has anything indexed to search
    """
    return search_service.index_status(db, user, rag)
