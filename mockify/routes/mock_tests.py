"""
Mock Test API routes
Generation, submission and results
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mockify.core import Messages
from mockify.database import get_db
from mockify.dependencies import get_current_user, get_rag_service
from mockify.models import User
from mockify.modules.study_rag import StudyRAGService
from mockify.schemas import GenerateTestRequest, MockTestResponse, ScheduleTestRequest, SubmitTestRequest
from mockify.services import mock_test_service, schedule_service

router = APIRouter()


@router.post("/generate", status_code=201)
def generate_test(
    request: GenerateTestRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Generate a mock test from the selected study materials.

    Context is retrieved from the materials by semantic search; without
    materials (or relevant chunks) the questions come from the exam
    syllabus in general.
    """
    test = mock_test_service.generate_test(db, user, rag, request)
    return {
        "success": True,
        "message": Messages.TEST_GENERATED,
        "test": MockTestResponse.model_validate(test),
    }


@router.get("", response_model=List[MockTestResponse])
def list_tests(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mock_test_service.list_tests(db, user)


# Declared before /{test_id} so "results" is not read as a test id
@router.get("/results")
def list_results(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Test result history, newest first
    """
    results = mock_test_service.list_results(db, user)
    return {"success": True, "results": results, "total": len(results)}


@router.post("/schedule", status_code=201)
def schedule_test(
    request: ScheduleTestRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Schedule one of your tests for a date and time
    """
    return schedule_service.schedule_test(db, user, request)


@router.get("/schedule")
def list_scheduled_tests(
    status: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Scheduled tests by status (default "scheduled"), soonest first
    """
    scheduled = schedule_service.list_scheduled(db, user, status)
    return {"success": True, "scheduled_tests": scheduled, "total": len(scheduled)}


@router.get("/schedule/upcoming")
def upcoming_tests(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Active scheduled tests in the next 7 days
    """
    upcoming = schedule_service.upcoming(db, user)
    return {"success": True, "upcoming": upcoming, "total": len(upcoming)}


@router.post("/schedule/{schedule_id}/cancel")
def cancel_scheduled_test(
    schedule_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return schedule_service.cancel(db, user, schedule_id)


@router.get("/{test_id}", response_model=MockTestResponse)
def get_test(test_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mock_test_service.get_test(db, user, test_id)


@router.post("/{test_id}/submit")
def submit_test(
    test_id: str,
    request: SubmitTestRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit answers ({question_id: answer}) and get the graded result
    """
    return mock_test_service.submit_test(db, user, test_id, request)


@router.get("/{test_id}/result")
def get_result(test_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mock_test_service.get_result(db, user, test_id)
