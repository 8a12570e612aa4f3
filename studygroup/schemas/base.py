"""Base schema configuration."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class TimestampMixin(BaseModel):
    """Mixin for created_at/updated_at timestamps."""

    created_at: datetime
    updated_at: datetime


class IDMixin(BaseModel):
    """Mixin for UUID primary key."""

    id: UUID


FailureReason = Literal[
    "not_authenticated",
    "forbidden",
    "not_found",
    "invalid",
    "conflict",
    "precondition",
    "backend",
]


class ActionResult(BaseModel):
    """
    Discriminated success/failure envelope returned by every domain action.

    Expected failures are values, not exceptions: `success` is False,
    `error` holds a user-facing message and `reason` says which kind of
    failure it was so the HTTP layer can pick a status code.
    """

    success: bool
    error: str | None = None
    reason: FailureReason | None = None

    @classmethod
    def ok(cls, **fields):
        return cls(success=True, **fields)

    @classmethod
    def fail(cls, error: str, reason: FailureReason, **fields):
        return cls(success=False, error=error, reason=reason, **fields)
