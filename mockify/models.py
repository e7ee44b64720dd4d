"""
SQLAlchemy models
Every row below the users table belongs to exactly one user.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    exam_type = Column(String(100), nullable=True)
    language = Column(String(20), default="en")
    onboarding_completed = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    materials = relationship("StudyMaterial", back_populates="user", cascade="all, delete-orphan")
    tests = relationship("MockTest", back_populates="user", cascade="all, delete-orphan")


class StudyMaterial(Base):
    __tablename__ = "study_materials"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_type = Column(String(150), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_hash = Column(String(64), nullable=True, index=True)
    material_type = Column(String(50), default="notes")
    exam_type = Column(String(100), nullable=True)
    topic = Column(String(255), nullable=True)
    language = Column(String(20), default="eng")
    extracted_text = Column(Text, nullable=True)
    extraction_method = Column(String(50), nullable=True)
    extraction_confidence = Column(Float, nullable=True)
    page_count = Column(Integer, nullable=True)
    chunk_count = Column(Integer, default=0)
    extracted_topics = Column(JSON, default=list)
    syllabus_data = Column(JSON, nullable=True)
    processing_status = Column(String(20), default="processing", index=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="materials")


class MockTest(Base):
    __tablename__ = "mock_tests"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    exam_type = Column(String(100), nullable=False)
    difficulty = Column(String(20), nullable=False)
    question_count = Column(Integer, nullable=False)
    time_limit_minutes = Column(Integer, nullable=True)
    status = Column(String(20), default="generated")
    material_ids = Column(JSON, default=list)
    generation_metadata = Column(JSON, default=dict)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="tests")
    questions = relationship(
        "TestQuestion",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="TestQuestion.position"
    )
    results = relationship("TestResult", back_populates="test", cascade="all, delete-orphan")
    schedules = relationship("ScheduledTest", back_populates="test", cascade="all, delete-orphan")


class TestQuestion(Base):
    __tablename__ = "test_questions"
    __test__ = False

    id = Column(String(36), primary_key=True, default=_uuid)
    test_id = Column(String(36), ForeignKey("mock_tests.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_answer = Column(String(1), nullable=False)
    topic = Column(String(255), nullable=True)
    difficulty = Column(String(20), nullable=True)
    explanation = Column(Text, nullable=True)

    test = relationship("MockTest", back_populates="questions")


class TestResult(Base):
    __tablename__ = "test_results"
    __test__ = False

    id = Column(String(36), primary_key=True, default=_uuid)
    test_id = Column(String(36), ForeignKey("mock_tests.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    time_taken = Column(Integer, default=0)
    answers = Column(JSON, default=dict)
    analytics = Column(JSON, default=dict)
    completed_at = Column(DateTime, default=utcnow, index=True)

    test = relationship("MockTest", back_populates="results")


class UserProgress(Base):
    __tablename__ = "user_progress"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_type = Column(String(100), nullable=False)
    topic = Column(String(255), nullable=False)
    tests_attempted = Column(Integer, default=0)
    total_questions = Column(Integer, default=0)
    correct_answers = Column(Integer, default=0)
    average_score = Column(Float, default=0.0)
    accuracy_rate = Column(Float, default=0.0)
    highest_score = Column(Integer, default=0)
    last_attempted = Column(DateTime, default=utcnow)


class PracticeSession(Base):
    __tablename__ = "practice_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_type = Column(String(100), default="General")
    weak_topics = Column(JSON, default=list)
    questions = Column(JSON, default=list)
    questions_count = Column(Integer, default=0)
    status = Column(String(20), default="generated")
    score = Column(Integer, nullable=True)
    topic_results = Column(JSON, default=dict)
    improvement = Column(JSON, default=dict)
    created_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime, nullable=True)


class DoubtHistory(Base):
    __tablename__ = "doubt_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    doubt_text = Column(Text, nullable=False)
    explanation = Column(Text, nullable=False)
    confidence = Column(String(10), nullable=False)
    was_helpful = Column(Boolean, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)


class ScheduledTest(Base):
    __tablename__ = "scheduled_tests"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    test_id = Column(String(36), ForeignKey("mock_tests.id", ondelete="CASCADE"), nullable=False, index=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(Time, nullable=False)
    timezone = Column(String(64), default="UTC")
    status = Column(String(20), default="scheduled", index=True)

    # Reminder delivery lives outside the API; only the preferences are kept
    send_day_before_reminder = Column(Boolean, default=True)
    send_hour_before_reminder = Column(Boolean, default=True)
    day_before_reminder_sent = Column(Boolean, default=False)
    hour_before_reminder_sent = Column(Boolean, default=False)
    reminder_email = Column(String(255), nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)

    test = relationship("MockTest", back_populates="schedules")
