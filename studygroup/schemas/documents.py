"""Pydantic schemas for document operations."""

from uuid import UUID

from pydantic import BaseModel, Field

from studygroup.schemas.base import ActionResult, BaseSchema, IDMixin, TimestampMixin


class DocumentRead(BaseSchema, IDMixin, TimestampMixin):
    """Document metadata."""

    user_id: UUID
    class_id: UUID | None = None
    title: str
    file_type: str
    file_size: int | None = None
    storage_path: str


class DocumentWithDetails(DocumentRead):
    """Document metadata joined with class and owner names for the feed."""

    class_name: str | None = None
    owner_name: str | None = None
    owner_username: str | None = None


class DocumentUploadResult(ActionResult):
    """Result of an upload."""

    document: DocumentRead | None = None


class DownloadURLResult(ActionResult):
    """Signed download URL."""

    url: str | None = None
    expires_in: int | None = None


class DocumentListResponse(BaseModel):
    """List of documents."""

    documents: list[DocumentWithDetails] = Field(default_factory=list)
    total: int
