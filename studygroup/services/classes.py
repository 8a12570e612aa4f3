"""Class management: creation, listing, deletion and the per-class system prompt."""

import logging
import secrets
import string
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.config import get_settings
from studygroup.db.models import Class, ClassEnrollment, Document, User
from studygroup.schemas.base import ActionResult
from studygroup.schemas.classes import ClassResult, ClassSummary, SystemPromptResult
from studygroup.services.actions import ActionFailure, envelope

logger = logging.getLogger(__name__)
settings = get_settings()

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_ATTEMPTS = 5


def generate_class_code(length: int | None = None) -> str:
    """Random upper-case alphanumeric join code."""
    length = length or settings.class_code_length
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


async def user_can_access_class(db: AsyncSession, user_id: UUID, cls: Class) -> bool:
    """The owner and enrolled users may see a class's materials and assistant."""
    if cls.owner_id == user_id:
        return True
    result = await db.execute(
        select(ClassEnrollment.id).where(
            ClassEnrollment.class_id == cls.id,
            ClassEnrollment.user_id == user_id,
        )
    )
    return result.first() is not None


async def _counts(db: AsyncSession, model, class_ids: list[UUID]) -> dict[UUID, int]:
    if not class_ids:
        return {}
    result = await db.execute(
        select(model.class_id, func.count())
        .where(model.class_id.in_(class_ids))
        .group_by(model.class_id)
    )
    return dict(result.all())


async def _summaries(db: AsyncSession, classes: list[Class]) -> list[ClassSummary]:
    ids = [c.id for c in classes]
    document_counts = await _counts(db, Document, ids)
    enrollment_counts = await _counts(db, ClassEnrollment, ids)
    return [
        ClassSummary.model_validate(c).model_copy(
            update={
                "document_count": document_counts.get(c.id, 0),
                "enrollment_count": enrollment_counts.get(c.id, 0),
            }
        )
        for c in classes
    ]


async def get_owned_class(db: AsyncSession, user: User, class_id: UUID, action: str) -> Class:
    """Load a class the user owns, or raise ActionFailure."""
    cls = await db.get(Class, class_id)
    if cls is None:
        raise ActionFailure("Class not found", "not_found")
    if cls.owner_id != user.id:
        raise ActionFailure(f"Only the class owner can {action}", "forbidden")
    return cls


@envelope(ClassResult, generic_message="Failed to create class.")
async def create_class(db: AsyncSession, user: User, name: str) -> ClassResult:
    """Create a class owned by a professor, with a fresh join code."""
    if not user.is_professor:
        raise ActionFailure("Only professors can create classes", "forbidden")

    name = (name or "").strip()
    if not name:
        raise ActionFailure("Class name is required", "invalid")

    for _ in range(_CODE_ATTEMPTS):
        code = generate_class_code()
        taken = await db.scalar(select(Class.id).where(Class.code == code))
        if taken is None:
            break
    else:
        raise ActionFailure("Could not generate a unique class code. Please try again.", "backend")

    new_class = Class(owner_id=user.id, name=name, code=code)
    db.add(new_class)
    await db.commit()
    await db.refresh(new_class)

    logger.info("Class %s created by %s with code %s", new_class.id, user.id, code)
    [summary] = await _summaries(db, [new_class])
    return ClassResult.ok(class_=summary)


async def list_classes(db: AsyncSession, user: User) -> list[ClassSummary]:
    """
    Classes visible on the user's dashboard, newest first.

    Professors see the classes they own; students see the classes they are
    enrolled in.
    """
    query = select(Class)
    if user.is_professor:
        query = query.where(Class.owner_id == user.id)
    else:
        query = query.join(ClassEnrollment, ClassEnrollment.class_id == Class.id).where(
            ClassEnrollment.user_id == user.id
        )
    result = await db.execute(query.order_by(Class.created_at.desc()))
    return await _summaries(db, list(result.scalars()))


@envelope(ClassResult, generic_message="Failed to load class.")
async def get_class(db: AsyncSession, class_id: UUID) -> ClassResult:
    """Single class with its counters."""
    cls = await db.get(Class, class_id)
    if cls is None:
        raise ActionFailure("Class not found", "not_found")
    [summary] = await _summaries(db, [cls])
    return ClassResult.ok(class_=summary)


@envelope(ActionResult, generic_message="Failed to delete class.")
async def delete_class(db: AsyncSession, user: User, class_id: UUID) -> ActionResult:
    """Delete a class. Its documents and enrollments go with it (ON DELETE CASCADE)."""
    cls = await get_owned_class(db, user, class_id, "delete this class")
    await db.delete(cls)
    await db.commit()
    logger.info("Class %s deleted by %s", class_id, user.id)
    return ActionResult.ok()


@envelope(SystemPromptResult, generic_message="Failed to load system prompt.")
async def get_system_prompt(db: AsyncSession, user: User, class_id: UUID) -> SystemPromptResult:
    cls = await get_owned_class(db, user, class_id, "view the system prompt")
    return SystemPromptResult.ok(system_prompt=cls.system_prompt)


@envelope(SystemPromptResult, generic_message="Failed to save system prompt.")
async def update_system_prompt(
    db: AsyncSession,
    user: User,
    class_id: UUID,
    system_prompt: str,
) -> SystemPromptResult:
    """Set the class's custom AI instructions; blank text clears them."""
    cls = await get_owned_class(db, user, class_id, "edit the system prompt")

    text = (system_prompt or "").strip()
    limit = settings.system_prompt_max_chars
    if len(text) > limit:
        raise ActionFailure(f"System prompt must be {limit} characters or fewer", "invalid")

    cls.system_prompt = text or None
    await db.commit()
    return SystemPromptResult.ok(system_prompt=cls.system_prompt)
