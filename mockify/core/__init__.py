# Core package
from .constants import (
    MessageRole,
    Difficulty,
    MaterialType,
    ProcessingStatus,
    TestStatus,
    ScheduleStatus,
    Priority,
    PerformanceLevel,
    Messages,
    FileLimits,
    ScoreThresholds,
)
from .exceptions import (
    BaseAPIException,
    NotFoundException,
    UnauthorizedException,
    BadRequestException,
    ConflictException,
    RateLimitException,
    ServiceUnavailableException,
    FileProcessingException,
    DatabaseException,
    AIModelException
)
from .logger import setup_logger, ingestion_logger, generation_logger

__all__ = [
    # Constants
    "MessageRole",
    "Difficulty",
    "MaterialType",
    "ProcessingStatus",
    "TestStatus",
    "ScheduleStatus",
    "Priority",
    "PerformanceLevel",
    "Messages",
    "FileLimits",
    "ScoreThresholds",
    # Exceptions
    "BaseAPIException",
    "NotFoundException",
    "UnauthorizedException",
    "BadRequestException",
    "ConflictException",
    "RateLimitException",
    "ServiceUnavailableException",
    "FileProcessingException",
    "DatabaseException",
    "AIModelException",
    # Logging
    "setup_logger",
    "ingestion_logger",
    "generation_logger",
]
