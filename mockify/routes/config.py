"""
Configuration API routes
Pipeline configuration and LLM provider switching
"""
import logging

from fastapi import APIRouter, Depends

from mockify.core import AIModelException, BadRequestException
from mockify.dependencies import get_current_user, get_rag_service
from mockify.models import User
from mockify.modules.study_rag import StudyRAGService
from mockify.schemas import LLMProviderRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def get_config(rag: StudyRAGService = Depends(get_rag_service)):
    """
    Get current pipeline configuration
    """
    return {"success": True, "config": rag.get_config()}


@router.get("/llm")
def get_llm_provider(rag: StudyRAGService = Depends(get_rag_service)):
    """
    Get current LLM provider information
    """
    return rag.get_llm_provider_info()


@router.post("/llm")
def set_llm_provider(
    request: LLMProviderRequest,
    user: User = Depends(get_current_user),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Switch LLM provider at runtime ("ollama" or "groq")
    """
    logger.info(f"User {user.id} switching LLM provider to {request.provider}")
    result = rag.set_llm_provider(request.provider, request.model)

    if not result.get("success"):
        if result.get("provider_error"):
            raise AIModelException(request.provider, result["error"])
        raise BadRequestException(result["error"])
    return result


@router.get("/llm/status")
def check_llm_status(rag: StudyRAGService = Depends(get_rag_service)):
    """
    Check whether the current LLM provider is reachable
    """
    return rag.check_llm_status()


@router.get("/index/stats")
def get_index_stats(
    user: User = Depends(get_current_user),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Get vector index statistics, including the caller's indexed chunks
    """
    return {"success": True, "stats": rag.get_index_stats(user.id)}
