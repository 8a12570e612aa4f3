"""Enrollment schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from studygroup.schemas.base import ActionResult, BaseSchema


class JoinByCodeRequest(BaseSchema):
    """Request to join a class with its shareable code."""

    code: str = Field(..., min_length=1, max_length=20)


class EnrollmentResult(ActionResult):
    """Result of a join attempt."""

    class_id: UUID | None = None
    class_name: str | None = None


class StudentRead(BaseSchema):
    """Roster entry: enrollment plus the student's profile fields."""

    user_id: UUID
    class_id: UUID
    enrolled_at: datetime
    full_name: str | None = None
    username: str | None = None
    email: str | None = None
    role: str | None = None


class RosterResult(ActionResult):
    """Roster of a class (owner only)."""

    students: list[StudentRead] = Field(default_factory=list)


class EnrollmentStatus(BaseModel):
    """Whether the caller is enrolled, and how many users are."""

    enrolled: bool
    enrollment_count: int
