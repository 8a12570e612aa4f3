"""Profile updates for the current user."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.db.models import User
from studygroup.schemas.user import ProfileResult, UserRead
from studygroup.services.actions import ActionFailure, envelope


@envelope(ProfileResult, generic_message="Failed to update profile.")
async def update_profile(db: AsyncSession, user: User, *, username: str, full_name: str) -> ProfileResult:
    username = (username or "").strip()
    full_name = (full_name or "").strip()
    if not username:
        raise ActionFailure("Username is required", "invalid")
    if not full_name:
        raise ActionFailure("Full name is required", "invalid")

    user.username = username
    user.full_name = full_name
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ActionFailure("That username is already taken", "conflict")

    await db.refresh(user)
    return ProfileResult.ok(user=UserRead.model_validate(user))
