"""Class routes: CRUD, system prompt, and the class document list."""

from uuid import UUID

from fastapi import APIRouter, Response, status

from studygroup.api.deps import CurrentUser, DbSession, get_accessible_class_or_404
from studygroup.api.envelopes import respond
from studygroup.schemas.base import ActionResult
from studygroup.schemas.classes import (
    ClassCreate,
    ClassResult,
    ClassSummary,
    SystemPromptResult,
    SystemPromptUpdate,
)
from studygroup.schemas.documents import DocumentListResponse
from studygroup.services import classes, documents

router = APIRouter(prefix="/classes", tags=["classes"])


@router.get("/", response_model=list[ClassSummary])
async def list_classes(
    current_user: CurrentUser,
    db: DbSession,
) -> list[ClassSummary]:
    """Owned classes for professors, enrolled classes for students."""
    return await classes.list_classes(db, current_user)


@router.post("/", response_model=ClassResult)
async def create_class(
    data: ClassCreate,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Create a class (professors only). The join code is generated."""
    result = await classes.create_class(db, current_user, data.name)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.get("/{class_id}", response_model=ClassResult)
async def get_class(
    class_id: UUID,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Get a class the user owns or is enrolled in, with its counters."""
    await get_accessible_class_or_404(db, class_id, current_user)
    result = await classes.get_class(db, class_id)
    return respond(result, response)


@router.delete("/{class_id}", response_model=ActionResult)
async def delete_class(
    class_id: UUID,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Delete a class (owner only). Documents and enrollments cascade."""
    result = await classes.delete_class(db, current_user, class_id)
    return respond(result, response)


@router.get("/{class_id}/system-prompt", response_model=SystemPromptResult)
async def get_system_prompt(
    class_id: UUID,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    result = await classes.get_system_prompt(db, current_user, class_id)
    return respond(result, response)


@router.put("/{class_id}/system-prompt", response_model=SystemPromptResult)
async def update_system_prompt(
    class_id: UUID,
    data: SystemPromptUpdate,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Replace the class's custom AI instructions (owner only)."""
    result = await classes.update_system_prompt(db, current_user, class_id, data.system_prompt)
    return respond(result, response)


@router.get("/{class_id}/documents", response_model=DocumentListResponse)
async def list_class_documents(
    class_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> DocumentListResponse:
    """Documents of a class, newest first."""
    await get_accessible_class_or_404(db, class_id, current_user)
    docs = await documents.list_class_documents(db, class_id)
    return DocumentListResponse(documents=docs, total=len(docs))
