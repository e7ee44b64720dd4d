"""
Schedule Service
Handles planning mock tests for a future date and time
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mockify.core import (
    Messages,
    ScheduleStatus,
    TestStatus,
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
)
from mockify.models import MockTest, ScheduledTest, User, utcnow
from mockify.schemas import ScheduleTestRequest, ScheduledTestResponse

from .mock_test_service import mock_test_service

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 7


class ScheduleService:
    """Service for scheduled mock tests"""

    @staticmethod
    def _to_dict(schedule: ScheduledTest, test: MockTest) -> Dict[str, Any]:
        data = ScheduledTestResponse.model_validate(schedule).model_dump()
        data["test"] = {
            "id": test.id,
            "title": test.title,
            "question_count": test.question_count,
            "time_limit_minutes": test.time_limit_minutes,
            "difficulty": test.difficulty,
        }
        return data

    def schedule_test(self, db: Session, user: User, request: ScheduleTestRequest) -> Dict[str, Any]:
        """
        Schedule one of the user's tests.

        Raises:
            NotFoundException: the test is not the user's
            ConflictException: the test was already taken
        """
        test = mock_test_service.get_test(db, user, request.test_id)
        if test.status == TestStatus.COMPLETED.value:
            raise ConflictException(Messages.CANNOT_SCHEDULE_COMPLETED)

        schedule = ScheduledTest(
            user_id=user.id,
            test_id=test.id,
            scheduled_date=request.scheduled_date,
            scheduled_time=request.scheduled_time,
            timezone=request.timezone,
            status=ScheduleStatus.SCHEDULED.value,
            send_day_before_reminder=request.send_day_before_reminder,
            send_hour_before_reminder=request.send_hour_before_reminder,
            reminder_email=user.email,
            notes=request.notes,
        )
        try:
            db.add(schedule)
            db.commit()
            db.refresh(schedule)
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("scheduling test", str(e))

        logger.info(
            f"User {user.id} scheduled test {test.id} for "
            f"{request.scheduled_date} {request.scheduled_time} {request.timezone}"
        )
        return {
            "success": True,
            "message": Messages.TEST_SCHEDULED,
            "scheduled_test": self._to_dict(schedule, test),
        }

    def list_scheduled(self, db: Session, user: User, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Scheduled tests with the given status, soonest first"""
        status = status or ScheduleStatus.SCHEDULED.value
        if status not in [s.value for s in ScheduleStatus]:
            raise BadRequestException(f"Invalid schedule status: {status}")

        rows = db.query(ScheduledTest, MockTest).join(MockTest, ScheduledTest.test_id == MockTest.id).filter(
            ScheduledTest.user_id == user.id,
            ScheduledTest.status == status,
        ).order_by(ScheduledTest.scheduled_date.asc(), ScheduledTest.scheduled_time.asc()).all()

        return [self._to_dict(schedule, test) for schedule, test in rows]

    def upcoming(self, db: Session, user: User, days: int = UPCOMING_DAYS) -> List[Dict[str, Any]]:
        """Active schedules from today through the next `days` days"""
        today = utcnow().date()
        rows = db.query(ScheduledTest, MockTest).join(MockTest, ScheduledTest.test_id == MockTest.id).filter(
            ScheduledTest.user_id == user.id,
            ScheduledTest.status == ScheduleStatus.SCHEDULED.value,
            ScheduledTest.scheduled_date >= today,
            ScheduledTest.scheduled_date <= today + timedelta(days=days),
        ).order_by(ScheduledTest.scheduled_date.asc(), ScheduledTest.scheduled_time.asc()).all()

        upcoming = []
        for schedule, test in rows:
            item = self._to_dict(schedule, test)
            item["days_until"] = (schedule.scheduled_date - today).days
            upcoming.append(item)
        return upcoming

    def cancel(self, db: Session, user: User, schedule_id: str) -> Dict[str, Any]:
        schedule = db.query(ScheduledTest).filter(
            ScheduledTest.id == schedule_id,
            ScheduledTest.user_id == user.id,
        ).first()
        if not schedule:
            raise NotFoundException("Scheduled test", schedule_id)
        if schedule.status != ScheduleStatus.SCHEDULED.value:
            raise ConflictException(Messages.SCHEDULE_NOT_ACTIVE)

        schedule.status = ScheduleStatus.CANCELLED.value
        db.commit()
        logger.info(f"Scheduled test {schedule_id} cancelled by {user.id}")
        return {"success": True, "message": Messages.SCHEDULE_CANCELLED, "id": schedule_id}


# Singleton instance
schedule_service = ScheduleService()
