# Services package
from .auth_service import auth_service, AuthService
from .material_service import material_service, MaterialService
from .search_service import search_service, SearchService
from .mock_test_service import mock_test_service, MockTestService
from .schedule_service import schedule_service, ScheduleService
from .progress_service import progress_service, ProgressService
from .practice_service import practice_service, PracticeService
from .tutor_service import tutor_service, TutorService

__all__ = [
    "auth_service",
    "AuthService",
    "material_service",
    "MaterialService",
    "search_service",
    "SearchService",
    "mock_test_service",
    "MockTestService",
    "schedule_service",
    "ScheduleService",
    "progress_service",
    "ProgressService",
    "practice_service",
    "PracticeService",
    "tutor_service",
    "TutorService",
]
