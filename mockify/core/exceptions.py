"""
Custom exceptions for the Mockify API
"""
from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base exception for all API errors"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str = None,
        headers: dict = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundException(BaseAPIException):
    """Resource not found"""

    def __init__(self, resource: str, identifier: str = None):
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class UnauthorizedException(BaseAPIException):
    """Missing or invalid credentials"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class BadRequestException(BaseAPIException):
    """Bad request - invalid input"""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
            error_code="BAD_REQUEST"
        )


class ConflictException(BaseAPIException):
    """Resource already exists or is in the wrong state"""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=message,
            error_code="CONFLICT"
        )


class RateLimitException(BaseAPIException):
    """Too many requests"""

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=message,
            error_code="RATE_LIMITED",
            headers={"Retry-After": str(retry_after)}
        )
        self.retry_after = retry_after


class ServiceUnavailableException(BaseAPIException):
    """External service unavailable"""

    def __init__(self, service: str, message: str = None):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=message or f"Service '{service}' is unavailable",
            error_code="SERVICE_UNAVAILABLE"
        )
        self.service = service


class FileProcessingException(BaseAPIException):
    """Error processing file"""

    def __init__(self, filename: str, reason: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Could not process file '{filename}': {reason}",
            error_code="FILE_PROCESSING_ERROR"
        )


class DatabaseException(BaseAPIException):
    """Database error"""

    def __init__(self, operation: str, reason: str = None):
        detail = f"Database error while {operation}"
        if reason:
            detail += f": {reason}"
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="DATABASE_ERROR"
        )


class AIModelException(BaseAPIException):
    """AI Model error"""

    def __init__(self, model: str, reason: str = None):
        detail = f"AI model '{model}' failed"
        if reason:
            detail += f": {reason}"
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code="AI_MODEL_ERROR"
        )
