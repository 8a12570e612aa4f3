"""User profile schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from studygroup.schemas.base import ActionResult, BaseSchema


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: UUID
    email: str | None
    full_name: str
    username: str | None
    role: str
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseSchema):
    """Schema for updating the current user's profile. Both fields are required."""

    username: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=255)


class ProfileResult(ActionResult):
    """Result of a profile update."""

    user: UserRead | None = None
