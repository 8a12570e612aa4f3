"""API routes for the class AI assistant."""

import logging
from uuid import UUID

from fastapi import APIRouter

from studygroup.api.deps import CurrentUser, DbSession, Gateway, Notifier, get_accessible_class_or_404
from studygroup.schemas.ai import AIQueryRequest, AIQueryResult, ReindexResult
from studygroup.services.ai_gateway import ask_class_assistant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/classes", tags=["ai"])


@router.post("/{class_id}/ai/query", response_model=AIQueryResult)
async def query_class_assistant(
    class_id: UUID,
    request: AIQueryRequest,
    db: DbSession,
    user: CurrentUser,
    gateway: Gateway,
) -> AIQueryResult:
    """
    Ask a question about a class's uploaded materials.

    Always answers 200: failures come back as `success: false` with an
    advisory `error` for the chat to display.
    """
    return await ask_class_assistant(db, user, class_id, request.question, gateway)


@router.post("/{class_id}/ai/reindex", response_model=ReindexResult)
async def reindex_class(
    class_id: UUID,
    db: DbSession,
    user: CurrentUser,
    notifier: Notifier,
) -> ReindexResult:
    """Drop the AI service's cached index for the class; the next query rebuilds it."""
    await get_accessible_class_or_404(db, class_id, user)
    success = await notifier.invalidate(class_id)
    if not success:
        logger.warning("Manual reindex of class %s could not reach the AI service", class_id)
    return ReindexResult(success=success)
