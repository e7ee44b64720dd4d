"""
Shared FastAPI dependencies
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .core import Messages, UnauthorizedException
from .core.security import decode_token
from .database import get_db
from .models import User
from .modules.study_rag import StudyRAGService

security_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user row, 401 otherwise"""
    if credentials is None:
        raise UnauthorizedException()

    payload = decode_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise UnauthorizedException(Messages.INVALID_TOKEN)

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if user is None:
        raise UnauthorizedException(Messages.USER_NOT_FOUND)
    return user


def get_rag_service() -> StudyRAGService:
    """Get study RAG service singleton instance"""
    return StudyRAGService.get_instance()
