"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Dict, Optional, Any
from datetime import date, datetime, time

from .core.constants import MAX_PASSWORD_BYTES, Difficulty, MessageRole


# ===== Auth Schemas =====
class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, description="At least 6 characters")
    name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        # bcrypt only hashes the first 72 bytes
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserProfile(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    exam_type: Optional[str] = None
    language: Optional[str] = None
    onboarding_completed: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    exam_type: Optional[str] = None
    language: Optional[str] = None
    onboarding_completed: Optional[bool] = None


class TokenResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


# ===== Material Schemas =====
class MaterialResponse(BaseModel):
    id: str
    file_name: str
    file_type: str
    file_size: int
    material_type: Optional[str] = None
    exam_type: Optional[str] = None
    topic: Optional[str] = None
    language: Optional[str] = None
    extraction_method: Optional[str] = None
    extraction_confidence: Optional[float] = None
    page_count: Optional[int] = None
    chunk_count: int = 0
    extracted_topics: List[Dict[str, Any]] = []
    syllabus_data: Optional[Dict[str, Any]] = None
    processing_status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UploadResponse(BaseModel):
    success: bool
    message: str
    material: MaterialResponse
    already_indexed: bool = False
    text_length: int = 0


class MaterialListResponse(BaseModel):
    materials: List[MaterialResponse]
    total: int


# ===== Search Schemas =====
class SearchRequest(BaseModel):
    query: str
    exam_type: Optional[str] = None
    topic: Optional[str] = None
    threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    limit: int = Field(default=10, ge=1, le=50)


class MatchedChunk(BaseModel):
    text: str
    similarity: float
    similarity_percent: int
    chunk_index: int
    position: str


class SearchResult(BaseModel):
    id: str
    topic: Optional[str] = None
    file_name: str
    file_type: str
    exam_type: Optional[str] = None
    material_type: Optional[str] = None
    similarity: float
    similarity_percent: int
    matched_chunks: List[MatchedChunk] = []
    total_matched_chunks: int = 0
    preview: str = ""
    created_at: Optional[datetime] = None


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    results: List[SearchResult]
    count: int
    stats: Dict[str, Any] = {}


# ===== Test Schemas =====
class TestConfig(BaseModel):
    exam_type: str = Field(..., min_length=1)
    difficulty: Difficulty = Difficulty.MEDIUM
    question_count: int = Field(default=10, ge=1, le=50)
    topics: List[str] = []
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)


class GenerateTestRequest(BaseModel):
    material_ids: List[str] = []
    test_config: TestConfig


class QuestionResponse(BaseModel):
    id: str
    position: int
    question_text: str
    options: List[str]
    correct_answer: str
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    explanation: Optional[str] = None

    model_config = {"from_attributes": True}


class MockTestResponse(BaseModel):
    id: str
    title: str
    exam_type: str
    difficulty: str
    question_count: int
    time_limit_minutes: Optional[int] = None
    status: str
    material_ids: List[str] = []
    generation_metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    questions: List[QuestionResponse] = []

    model_config = {"from_attributes": True}


class SubmitTestRequest(BaseModel):
    answers: Dict[str, Optional[str]] = {}
    time_taken: int = Field(default=0, ge=0, description="Seconds spent on the test")


# ===== Schedule Schemas =====
class ScheduleTestRequest(BaseModel):
    test_id: str = Field(..., min_length=1)
    scheduled_date: date
    scheduled_time: time
    timezone: str = Field(default="UTC", min_length=1, max_length=64)
    send_day_before_reminder: bool = True
    send_hour_before_reminder: bool = True
    notes: Optional[str] = Field(default=None, max_length=1000)


class ScheduledTestResponse(BaseModel):
    id: str
    test_id: str
    scheduled_date: date
    scheduled_time: time
    timezone: str
    status: str
    send_day_before_reminder: bool
    send_hour_before_reminder: bool
    reminder_email: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ===== Practice Schemas =====
class PracticeGenerateRequest(BaseModel):
    question_count: int = Field(default=5, ge=1, le=20)
    exam_type: str = "General"
    topics: Optional[List[str]] = None


class PracticeSubmitRequest(BaseModel):
    answers: Dict[str, Optional[str]] = {}


# ===== Tutor Schemas =====
class ChatMessage(BaseModel):
    role: MessageRole = Field(..., description="Role: 'user' or 'assistant'")
    content: str = Field(..., description="Message content")


class DoubtRequest(BaseModel):
    question_text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2)
    correct_answer: str = Field(..., min_length=1)
    user_answer: Optional[str] = None
    doubt_text: str = Field(..., min_length=1)
    topic: Optional[str] = None
    history: List[ChatMessage] = Field(default=[], description="Chat history")


class DoubtFeedback(BaseModel):
    was_helpful: bool


# ===== Config Schemas =====
class LLMProviderRequest(BaseModel):
    provider: str = Field(..., description="LLM provider: 'ollama' or 'groq'")
    model: Optional[str] = Field(None, description="Optional model name override")
