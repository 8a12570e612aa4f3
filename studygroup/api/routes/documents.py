"""API routes for document upload and management."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, Form, Response, UploadFile, status

from studygroup.api.deps import CurrentUser, DbSession, Notifier, Storage
from studygroup.api.envelopes import respond
from studygroup.schemas.base import ActionResult
from studygroup.schemas.documents import (
    DocumentListResponse,
    DocumentUploadResult,
    DownloadURLResult,
)
from studygroup.services import documents

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/", response_model=DocumentUploadResult)
async def upload_document(
    response: Response,
    db: DbSession,
    user: CurrentUser,
    storage: Storage,
    notifier: Notifier,
    file: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str, Form()] = "",
    class_id: Annotated[UUID | None, Form()] = None,
):
    """
    Upload a file to a class.

    Multipart form fields: `file`, `title`, `class_id`. The file is stored
    first and the row inserted second; a failed insert removes the stored
    file again.
    """
    data = await file.read() if file is not None else None
    result = await documents.upload_document(
        db,
        user,
        class_id=class_id,
        title=title,
        filename=file.filename if file is not None else None,
        data=data,
        content_type=file.content_type if file is not None else None,
        storage=storage,
        notifier=notifier,
    )
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.get("/", response_model=DocumentListResponse)
async def list_my_documents(
    db: DbSession,
    user: CurrentUser,
    q: str | None = None,
) -> DocumentListResponse:
    """Documents uploaded by the current user, newest first. `q` filters by title."""
    docs = await documents.list_my_documents(db, user, search=q)
    return DocumentListResponse(documents=docs, total=len(docs))


@router.get("/{document_id}/download-url", response_model=DownloadURLResult)
async def get_download_url(
    document_id: UUID,
    response: Response,
    db: DbSession,
    user: CurrentUser,
    storage: Storage,
):
    """Signed URL valid for one hour."""
    result = await documents.get_download_url(db, user, document_id, storage)
    return respond(result, response)


@router.delete("/{document_id}", response_model=ActionResult)
async def delete_document(
    document_id: UUID,
    response: Response,
    db: DbSession,
    user: CurrentUser,
    storage: Storage,
    notifier: Notifier,
):
    """
    Delete a document from storage and the database (owner only).

    A storage failure is logged and does not keep the row alive.
    """
    result = await documents.delete_document(db, user, document_id, storage, notifier)
    return respond(result, response)
