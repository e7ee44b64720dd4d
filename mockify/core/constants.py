"""
Application constants
"""
from enum import Enum


class MessageRole(str, Enum):
    """Tutor chat message roles"""
    USER = "user"
    ASSISTANT = "assistant"


class Difficulty(str, Enum):
    """Question difficulty levels"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MaterialType(str, Enum):
    """Kinds of study material a user can upload"""
    NOTES = "notes"
    TEXTBOOK = "textbook"
    PREVIOUS_PAPER = "previous_paper"
    SYLLABUS = "syllabus"
    OTHER = "other"


class ProcessingStatus(str, Enum):
    """Study material processing status"""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TestStatus(str, Enum):
    """Mock test and practice session status"""
    GENERATED = "generated"
    COMPLETED = "completed"


class ScheduleStatus(str, Enum):
    """Scheduled test status"""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    """Weak topic priority"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PerformanceLevel(str, Enum):
    """Score evaluation categories"""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    BELOW_AVERAGE = "Below Average"
    POOR = "Poor"


# API Response Messages
class Messages:
    """API response messages"""

    # Success messages
    SIGNUP_SUCCESS = "Account created successfully"
    LOGIN_SUCCESS = "Logged in successfully"
    UPLOAD_SUCCESS = "File uploaded and processed successfully"
    ALREADY_INDEXED = "This file has already been uploaded and processed"
    MATERIAL_DELETED = "Study material deleted"
    TEST_GENERATED = "Mock test generated successfully"
    TEST_SUBMITTED = "Test submitted successfully"
    TEST_SCHEDULED = "Test scheduled successfully"
    SCHEDULE_CANCELLED = "Scheduled test cancelled"
    NO_WEAK_TOPICS = "No weak topics found! Great job! Keep practicing to maintain your performance."
    PRACTICE_GREAT = "Great improvement!"
    PRACTICE_KEEP_GOING = "Keep practicing!"

    # Error messages
    INVALID_CREDENTIALS = "Invalid email or password"
    EMAIL_TAKEN = "An account with this email already exists"
    INVALID_TOKEN = "Invalid or expired token"
    USER_NOT_FOUND = "User not found"
    EMPTY_FILE = "Uploaded file is empty"
    FILE_TOO_LARGE = "File size must be less than 10MB"
    INVALID_FILE_TYPE = "Invalid file type. Please upload PDF, image, DOCX or text files."
    EMPTY_QUERY = "Search query is required"
    MISSING_TEST_CONFIG = "Missing required test configuration"
    AI_UNAVAILABLE = "AI service temporarily unavailable. Please try again."
    SEARCH_UNAVAILABLE = "Search temporarily unavailable"
    AI_RATE_LIMITED = "API rate limit reached. Please wait a moment and try again."
    TUTOR_RATE_LIMITED = "Too many requests. Please wait a minute before asking another doubt."
    TEST_ALREADY_SUBMITTED = "This test has already been submitted"
    SESSION_ALREADY_SUBMITTED = "This practice session has already been submitted"
    CANNOT_SCHEDULE_COMPLETED = "This test has already been completed and cannot be scheduled"
    SCHEDULE_NOT_ACTIVE = "Only scheduled tests can be cancelled"


# File size limits (in bytes)
class FileLimits:
    """Upload limits and accepted types"""
    MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB
    ALLOWED_MIME_TYPES = (
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "text/plain",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    )


# Score thresholds (percent)
class ScoreThresholds:
    """Score evaluation thresholds"""
    EXCELLENT = 90
    GOOD = 75
    AVERAGE = 60
    BELOW_AVERAGE = 40

    STRENGTH = 80
    WEAKNESS = 60


# bcrypt input limit
MAX_PASSWORD_BYTES = 72
