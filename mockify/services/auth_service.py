"""
Auth Service
Handles signup, login and profile updates
"""
import logging
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mockify.core import (
    Messages,
    ConflictException,
    DatabaseException,
    UnauthorizedException,
)
from mockify.core.security import create_access_token, hash_password, verify_password
from mockify.models import User
from mockify.schemas import ProfileUpdate, SignupRequest, LoginRequest, UserProfile

logger = logging.getLogger(__name__)


class AuthService:
    """Service for user accounts and access tokens"""

    def _token_response(self, user: User) -> Dict[str, Any]:
        return {
            "success": True,
            "access_token": create_access_token(user.id),
            "token_type": "bearer",
            "user": UserProfile.model_validate(user),
        }

    def signup(self, db: Session, request: SignupRequest) -> Dict[str, Any]:
        """Create an account and return a token for it"""
        if db.query(User).filter(User.email == request.email).first():
            raise ConflictException(Messages.EMAIL_TAKEN)

        user = User(
            email=request.email,
            name=request.name,
            hashed_password=hash_password(request.password),
        )
        try:
            db.add(user)
            db.commit()
            db.refresh(user)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating user {request.email}: {e}")
            raise DatabaseException("creating account", str(e))

        logger.info(f"User signed up: {user.id}")
        return self._token_response(user)

    def login(self, db: Session, request: LoginRequest) -> Dict[str, Any]:
        user = db.query(User).filter(User.email == request.email).first()
        if not user or not verify_password(request.password, user.hashed_password):
            raise UnauthorizedException(Messages.INVALID_CREDENTIALS)

        logger.info(f"User logged in: {user.id}")
        return self._token_response(user)

    def update_profile(self, db: Session, user: User, update: ProfileUpdate) -> User:
        for field, value in update.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        try:
            db.commit()
            db.refresh(user)
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("updating profile", str(e))
        return user


# Singleton instance
auth_service = AuthService()
