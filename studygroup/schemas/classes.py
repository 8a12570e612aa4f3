"""Class/Course schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import ConfigDict, Field

from studygroup.schemas.base import ActionResult, BaseSchema


class ClassCreate(BaseSchema):
    """Schema for creating a class. The join code is generated server-side."""

    name: str = Field(..., max_length=255)


class ClassRead(BaseSchema):
    """Schema for reading class data."""

    id: UUID
    owner_id: UUID
    name: str
    code: str | None = None
    created_at: datetime


class ClassSummary(ClassRead):
    """Class with the counters shown on class cards."""

    document_count: int = 0
    enrollment_count: int = 0


class ClassResult(ActionResult):
    """Result of creating or fetching a class. Serialized with a `class` key."""

    model_config = ConfigDict(populate_by_name=True)

    class_: ClassSummary | None = Field(None, alias="class")


class SystemPromptUpdate(BaseSchema):
    """Custom instruction text; blank clears it."""

    system_prompt: str = ""


class SystemPromptResult(ActionResult):
    """Current system prompt of a class."""

    system_prompt: str | None = None
