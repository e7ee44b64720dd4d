"""
Auth API routes
Signup, login and the current user's profile
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mockify.database import get_db
from mockify.dependencies import get_current_user
from mockify.models import User
from mockify.schemas import LoginRequest, ProfileUpdate, SignupRequest, TokenResponse, UserProfile
from mockify.services import auth_service

router = APIRouter()


@router.post("/signup", response_model=TokenResponse, status_code=201)
def signup(request: SignupRequest, db: Session = Depends(get_db)):
    """
    Create an account and return an access token
    """
    return auth_service.signup(db, request)


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Exchange email and password for an access token
    """
    return auth_service.login(db, request)


@router.get("/me", response_model=UserProfile)
def get_me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserProfile)
def update_me(
    update: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update profile fields (name, exam type, language, onboarding)
    """
    return auth_service.update_profile(db, user, update)
