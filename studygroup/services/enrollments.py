"""Self-service enrollment, class-code join and class rosters."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.db.models import Class, ClassEnrollment, User
from studygroup.schemas.enrollments import EnrollmentResult, RosterResult, StudentRead
from studygroup.services.actions import ActionFailure, envelope
from studygroup.services.classes import get_owned_class

logger = logging.getLogger(__name__)

ALREADY_ENROLLED_MESSAGE = "Already enrolled in this class"
ALREADY_ENROLLED_BY_CODE_MESSAGE = "You are already enrolled in this class"
INVALID_CODE_MESSAGE = "Invalid class code"


def normalize_class_code(code: str) -> str:
    return (code or "").strip().upper()


async def _enroll(db: AsyncSession, cls: Class, user: User, duplicate_message: str) -> None:
    """
    Insert the (class, user) row.

    The pre-check gives the friendly message in the common case; two
    concurrent joins both pass it, and the loser trips the unique constraint,
    which is reported the same way.
    """
    existing = await db.scalar(
        select(ClassEnrollment.id).where(
            ClassEnrollment.class_id == cls.id,
            ClassEnrollment.user_id == user.id,
        )
    )
    if existing is not None:
        raise ActionFailure(duplicate_message, "conflict")

    # Rollback expires loaded instances, so the ids are read up front
    class_id, user_id = cls.id, user.id
    db.add(ClassEnrollment(class_id=class_id, user_id=user_id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Concurrent enrollment of %s in %s rejected by constraint", user_id, class_id)
        raise ActionFailure(duplicate_message, "conflict")

    logger.info("User %s enrolled in class %s", user_id, class_id)


@envelope(EnrollmentResult, generic_message="Failed to enroll.")
async def enroll(db: AsyncSession, user: User, class_id: UUID) -> EnrollmentResult:
    """Enroll the current user in a class by identifier."""
    cls = await db.get(Class, class_id)
    if cls is None:
        raise ActionFailure("Class not found", "not_found")

    await _enroll(db, cls, user, ALREADY_ENROLLED_MESSAGE)
    return EnrollmentResult.ok(class_id=cls.id, class_name=cls.name)


@envelope(EnrollmentResult, generic_message="Failed to enroll in class.")
async def enroll_by_code(db: AsyncSession, user: User, code: str) -> EnrollmentResult:
    """Enroll the current user in the class whose join code matches (case-insensitive)."""
    normalized = normalize_class_code(code)
    if not normalized:
        raise ActionFailure(INVALID_CODE_MESSAGE, "not_found")

    cls = await db.scalar(select(Class).where(Class.code == normalized))
    if cls is None:
        raise ActionFailure(INVALID_CODE_MESSAGE, "not_found")

    await _enroll(db, cls, user, ALREADY_ENROLLED_BY_CODE_MESSAGE)
    return EnrollmentResult.ok(class_id=cls.id, class_name=cls.name or "Unknown Class")


@envelope(RosterResult, generic_message="Failed to load students.")
async def list_students(db: AsyncSession, user: User, class_id: UUID) -> RosterResult:
    """Students enrolled in a class, most recent first. Owner only."""
    await get_owned_class(db, user, class_id, "view the roster")

    result = await db.execute(
        select(ClassEnrollment, User)
        .join(User, User.id == ClassEnrollment.user_id)
        .where(ClassEnrollment.class_id == class_id)
        .order_by(ClassEnrollment.enrolled_at.desc())
    )
    students = [
        StudentRead(
            user_id=enrollment.user_id,
            class_id=enrollment.class_id,
            enrolled_at=enrollment.enrolled_at,
            full_name=student.full_name,
            username=student.username,
            email=student.email,
            role=student.role,
        )
        for enrollment, student in result.all()
    ]
    return RosterResult.ok(students=students)


async def enrollment_count(db: AsyncSession, class_id: UUID) -> int:
    count = await db.scalar(
        select(func.count()).select_from(ClassEnrollment).where(ClassEnrollment.class_id == class_id)
    )
    return count or 0


async def is_enrolled(db: AsyncSession, user_id: UUID, class_id: UUID) -> bool:
    existing = await db.scalar(
        select(ClassEnrollment.id).where(
            ClassEnrollment.class_id == class_id,
            ClassEnrollment.user_id == user_id,
        )
    )
    return existing is not None
