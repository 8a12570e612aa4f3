"""
Document upload, listing, download and deletion.

Bytes go to object storage and metadata to the documents table. The two
writes are kept consistent by hand: a row is only inserted after the bytes
are stored, and stored bytes are removed again if the insert fails.
"""

import logging
import mimetypes
import re
import time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.config import get_settings
from studygroup.db.models import ALLOWED_DOCUMENT_TYPES, Class, Document, User
from studygroup.schemas.base import ActionResult
from studygroup.schemas.documents import (
    DocumentRead,
    DocumentUploadResult,
    DocumentWithDetails,
    DownloadURLResult,
)
from studygroup.services.actions import ActionFailure, backend_error_message, envelope
from studygroup.services.ai_cache import CacheInvalidationNotifier
from studygroup.services.classes import user_can_access_class
from studygroup.services.storage import DocumentStorage, StorageError

logger = logging.getLogger(__name__)
settings = get_settings()

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def file_extension(filename: str) -> str:
    """Lower-cased extension without the dot, or "" when there is none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_storage_path(user_id: UUID, class_id: UUID, filename: str, timestamp_ms: int | None = None) -> str:
    """`{user_id}/{class_id}/{unix_timestamp_ms}_{sanitized_filename}`"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{user_id}/{class_id}/{timestamp_ms}_{sanitize_filename(filename)}"


def _details_query():
    return (
        select(Document, Class.name, User.full_name, User.username)
        .outerjoin(Class, Class.id == Document.class_id)
        .join(User, User.id == Document.user_id)
    )


def _with_details(rows) -> list[DocumentWithDetails]:
    return [
        DocumentWithDetails.model_validate(document).model_copy(
            update={"class_name": class_name, "owner_name": owner_name, "owner_username": owner_username}
        )
        for document, class_name, owner_name, owner_username in rows
    ]


@envelope(DocumentUploadResult, generic_message="Upload failed.")
async def upload_document(
    db: AsyncSession,
    user: User,
    *,
    class_id: UUID | None,
    title: str,
    filename: str | None,
    data: bytes | None,
    storage: DocumentStorage,
    notifier: CacheInvalidationNotifier,
    content_type: str | None = None,
) -> DocumentUploadResult:
    """
    Store a file for a class and record it.

    Validation happens before any storage write. On success the AI cache for
    the class is invalidated in the background.
    """
    if not filename or not data:
        raise ActionFailure("No file provided", "invalid")

    title = (title or "").strip()
    if not title:
        raise ActionFailure("Title is required", "invalid")

    if class_id is None:
        raise ActionFailure("Class ID is required", "invalid")

    file_type = file_extension(filename)
    if file_type not in ALLOWED_DOCUMENT_TYPES:
        raise ActionFailure(
            f"File type .{file_type} not allowed. Allowed types: {', '.join(ALLOWED_DOCUMENT_TYPES)}",
            "invalid",
        )

    if len(data) > settings.max_document_size_bytes:
        limit_mb = settings.max_document_size_bytes // (1024 * 1024)
        raise ActionFailure(f"File is larger than the {limit_mb} MB limit", "invalid")

    cls = await db.get(Class, class_id)
    if cls is None or not await user_can_access_class(db, user.id, cls):
        raise ActionFailure("Class not found or you do not have access to it", "not_found")

    storage_path = build_storage_path(user.id, class_id, filename)
    content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

    try:
        await storage.upload(storage_path, data, content_type)
    except StorageError as e:
        logger.error("Storage upload failed for %s: %s", storage_path, str(e))
        return DocumentUploadResult.fail(backend_error_message(e, "Upload failed."), "backend")

    document = Document(
        user_id=user.id,
        class_id=class_id,
        title=title,
        file_type=file_type,
        file_size=len(data),
        storage_path=storage_path,
    )
    db.add(document)
    try:
        await db.commit()
        await db.refresh(document)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Database insert failed for %s, removing stored object", storage_path)
        try:
            await storage.remove(storage_path)
        except StorageError:
            logger.exception("Compensating delete failed; orphaned object at %s", storage_path)
        return DocumentUploadResult.fail(backend_error_message(e, "Database error."), "backend")

    logger.info("Document %s uploaded to class %s (%d bytes)", document.id, class_id, len(data))
    notifier.notify(class_id)
    return DocumentUploadResult.ok(document=DocumentRead.model_validate(document))


async def list_class_documents(db: AsyncSession, class_id: UUID) -> list[DocumentWithDetails]:
    """Documents of a class, newest first."""
    result = await db.execute(
        _details_query().where(Document.class_id == class_id).order_by(Document.created_at.desc())
    )
    return _with_details(result.all())


async def list_my_documents(db: AsyncSession, user: User, search: str | None = None) -> list[DocumentWithDetails]:
    """Documents uploaded by the user, newest first, optionally filtered by title."""
    query = _details_query().where(Document.user_id == user.id)
    if search and search.strip():
        query = query.where(Document.title.ilike(f"%{search.strip()}%"))
    result = await db.execute(query.order_by(Document.created_at.desc()))
    return _with_details(result.all())


@envelope(DownloadURLResult, generic_message="Failed to create download link.")
async def get_download_url(
    db: AsyncSession,
    user: User,
    document_id: UUID,
    storage: DocumentStorage,
) -> DownloadURLResult:
    """Presigned download URL for a document the user owns or can see through its class."""
    document = await db.get(Document, document_id)
    if document is None:
        raise ActionFailure("Document not found", "not_found")

    if document.user_id != user.id:
        cls = await db.get(Class, document.class_id) if document.class_id else None
        if cls is None or not await user_can_access_class(db, user.id, cls):
            raise ActionFailure("Document not found", "not_found")

    expires_in = settings.document_download_url_expiration
    try:
        url = await storage.create_signed_url(document.storage_path, expires_in)
    except StorageError as e:
        logger.error("Could not sign download URL for %s: %s", document.storage_path, str(e))
        return DownloadURLResult.fail(backend_error_message(e, "Failed to create download link."), "backend")
    return DownloadURLResult.ok(url=url, expires_in=expires_in)


@envelope(ActionResult, generic_message="Delete failed.")
async def delete_document(
    db: AsyncSession,
    user: User,
    document_id: UUID,
    storage: DocumentStorage,
    notifier: CacheInvalidationNotifier,
) -> ActionResult:
    """
    Delete a document's bytes and row. Owner only.

    Not atomic: a storage failure is logged and the row is deleted anyway.
    """
    document = await db.get(Document, document_id)
    if document is None:
        raise ActionFailure("Document not found", "not_found")
    if document.user_id != user.id:
        raise ActionFailure("Not authorized to delete this document", "forbidden")

    class_id = document.class_id
    try:
        await storage.remove(document.storage_path)
    except StorageError as e:
        logger.error("Storage delete failed for %s: %s", document.storage_path, str(e))

    await db.delete(document)
    await db.commit()

    logger.info("Document %s deleted by %s", document_id, user.id)
    if class_id is not None:
        notifier.notify(class_id)
    return ActionResult.ok()
