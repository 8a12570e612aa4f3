"""Pydantic schemas for API request/response validation."""

from studygroup.schemas.ai import AIQueryRequest, AIQueryResult, ReindexResult, SourceCitation
from studygroup.schemas.auth import GoogleAuthRequest, TokenResponse
from studygroup.schemas.base import ActionResult
from studygroup.schemas.classes import (
    ClassCreate,
    ClassRead,
    ClassResult,
    ClassSummary,
    SystemPromptResult,
    SystemPromptUpdate,
)
from studygroup.schemas.documents import (
    DocumentListResponse,
    DocumentRead,
    DocumentUploadResult,
    DocumentWithDetails,
    DownloadURLResult,
)
from studygroup.schemas.enrollments import (
    EnrollmentResult,
    EnrollmentStatus,
    JoinByCodeRequest,
    RosterResult,
    StudentRead,
)
from studygroup.schemas.user import ProfileResult, ProfileUpdate, UserRead

__all__ = [
    # Envelopes
    "ActionResult",
    # AI
    "AIQueryRequest",
    "AIQueryResult",
    "ReindexResult",
    "SourceCitation",
    # Auth
    "GoogleAuthRequest",
    "TokenResponse",
    # Classes
    "ClassCreate",
    "ClassRead",
    "ClassResult",
    "ClassSummary",
    "SystemPromptResult",
    "SystemPromptUpdate",
    # Documents
    "DocumentListResponse",
    "DocumentRead",
    "DocumentUploadResult",
    "DocumentWithDetails",
    "DownloadURLResult",
    # Enrollments
    "EnrollmentResult",
    "EnrollmentStatus",
    "JoinByCodeRequest",
    "RosterResult",
    "StudentRead",
    # Users
    "ProfileResult",
    "ProfileUpdate",
    "UserRead",
]
