"""Enrollment routes: join by id or code, roster, enrollment status."""

from uuid import UUID

from fastapi import APIRouter, Response, status

from studygroup.api.deps import CurrentUser, DbSession, get_accessible_class_or_404
from studygroup.api.envelopes import respond
from studygroup.schemas.enrollments import (
    EnrollmentResult,
    EnrollmentStatus,
    JoinByCodeRequest,
    RosterResult,
)
from studygroup.services import enrollments

router = APIRouter(prefix="/classes", tags=["enrollments"])


@router.post("/join", response_model=EnrollmentResult)
async def join_by_code(
    data: JoinByCodeRequest,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Join the class whose code matches. Codes are case-insensitive."""
    result = await enrollments.enroll_by_code(db, current_user, data.code)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.post("/{class_id}/enroll", response_model=EnrollmentResult)
async def enroll(
    class_id: UUID,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Join a class directly by identifier."""
    result = await enrollments.enroll(db, current_user, class_id)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.get("/{class_id}/students", response_model=RosterResult)
async def list_students(
    class_id: UUID,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Roster of a class (owner only)."""
    result = await enrollments.list_students(db, current_user, class_id)
    return respond(result, response)


@router.get("/{class_id}/enrollment", response_model=EnrollmentStatus)
async def enrollment_status(
    class_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> EnrollmentStatus:
    """Whether the caller is enrolled, plus the class's enrollment count."""
    await get_accessible_class_or_404(db, class_id, current_user)
    return EnrollmentStatus(
        enrolled=await enrollments.is_enrolled(db, current_user.id, class_id),
        enrollment_count=await enrollments.enrollment_count(db, class_id),
    )
