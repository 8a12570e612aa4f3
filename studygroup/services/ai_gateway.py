"""
Client for the external AI question-answering service.

The service indexes a class's documents and answers questions about them.
Every outcome, including transport failures and error responses, is turned
into an AIQueryResult; nothing here raises for an unsuccessful query and
nothing is retried. The caller decides whether to let the user resubmit.
"""

import json
import logging
from uuid import UUID

import httpx
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.config import get_settings, sanitize_error
from studygroup.db.models import Class, Document, User
from studygroup.schemas.ai import AIQueryResult, SourceCitation
from studygroup.services.actions import backend_error_message
from studygroup.services.classes import user_can_access_class

logger = logging.getLogger(__name__)
settings = get_settings()

EMPTY_QUESTION_MESSAGE = "Please enter a question."
CLASS_NOT_FOUND_MESSAGE = "Class not found or you do not have access to it"
NO_DOCUMENTS_MESSAGE = "No documents found for this class. Please upload some study materials first."
TIMEOUT_MESSAGE = (
    "The AI is taking longer than expected to process your documents. "
    "This usually happens on the first query when documents are being indexed. "
    "Please wait a moment and try again - subsequent queries will be much faster (2-5 seconds)."
)
UNREACHABLE_MESSAGE = "Unable to connect to AI service. Please make sure the AI service is running."
INDEX_NOT_READY_MESSAGE = (
    "No documents found in the AI index. This might be the first query - "
    "please wait while we index your documents and try again."
)
INVALID_CLASS_ID_MESSAGE = "Invalid class ID. Please try refreshing the page."


def question_too_long_message(limit: int) -> str:
    return f"Questions are limited to {limit} characters."


def _error_detail(response: httpx.Response) -> str:
    """Body text of an error response, or its JSON `detail` field when present."""
    text = response.text
    try:
        payload = json.loads(text)
    except ValueError:
        return text
    if isinstance(payload, dict) and payload.get("detail"):
        detail = payload["detail"]
        return detail if isinstance(detail, str) else json.dumps(detail)
    return text


class AIGatewayClient:
    """Translates (class, question) pairs into calls to the AI service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.ai_service_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ai_query_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )

    async def query(self, class_id: str, question: str, user_id: str) -> AIQueryResult:
        """
        POST the question to `/query` and normalize the outcome.

        Args:
            class_id: Class whose documents scope the answer
            question: The user's question
            user_id: Asking user, forwarded for the service's own bookkeeping

        Returns:
            AIQueryResult with success=True and the answer, or success=False
            and an advisory message matching the failure
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    "/query",
                    json={"class_id": class_id, "question": question, "user_id": user_id},
                )
        except httpx.TimeoutException:
            logger.warning("AI query timed out after %.0fs for class %s", self.timeout, class_id)
            return AIQueryResult.failure(TIMEOUT_MESSAGE)
        except httpx.ConnectError as e:
            logger.error("AI service unreachable at %s: %s", self.base_url, str(e))
            return AIQueryResult.failure(UNREACHABLE_MESSAGE)
        except httpx.HTTPError as e:
            logger.exception("Unexpected transport error querying AI service")
            return AIQueryResult.failure(
                f"An unexpected error occurred: {sanitize_error(e, generic_message='request failed')}"
            )

        logger.info("AI service response status: %d", response.status_code)

        if not response.is_success:
            return self._classify_error(response)

        try:
            payload = response.json()
            return AIQueryResult(
                success=True,
                answer=payload.get("answer") or "",
                sources=[SourceCitation.model_validate(s) for s in payload.get("sources") or []],
                confidence=payload.get("confidence"),
            )
        except (ValueError, AttributeError) as e:
            logger.error("Unreadable AI service response: %s", str(e))
            return AIQueryResult.failure(
                f"An unexpected error occurred: {sanitize_error(e, generic_message='unreadable response')}"
            )

    @staticmethod
    def _classify_error(response: httpx.Response) -> AIQueryResult:
        """Map a non-2xx response to an advisory message."""
        detail = _error_detail(response)
        logger.error("AI service error response (%d): %s", response.status_code, detail)
        truncated = detail[: settings.ai_error_detail_max_chars]

        if response.status_code == 404:
            return AIQueryResult.failure(INDEX_NOT_READY_MESSAGE)

        if response.status_code == 500:
            if "no rows returned" in detail:
                return AIQueryResult.failure(NO_DOCUMENTS_MESSAGE)
            if "invalid input syntax" in detail or "uuid" in detail:
                return AIQueryResult.failure(INVALID_CLASS_ID_MESSAGE)
            return AIQueryResult.failure(f"AI service error: {truncated}")

        return AIQueryResult.failure(f"Unexpected error ({response.status_code}): {truncated}")


async def ask_class_assistant(
    db: AsyncSession,
    user: User,
    class_id: UUID,
    question: str,
    gateway: AIGatewayClient,
) -> AIQueryResult:
    """
    Answer a question about a class's materials.

    Local preconditions are checked first; the AI service is only called for
    an accessible class that has at least one document.
    """
    question = question.strip()
    if not question:
        return AIQueryResult.failure(EMPTY_QUESTION_MESSAGE)
    if len(question) > settings.ai_question_max_chars:
        return AIQueryResult.failure(question_too_long_message(settings.ai_question_max_chars))

    try:
        cls = await db.get(Class, class_id)
        if cls is None or not await user_can_access_class(db, user.id, cls):
            return AIQueryResult.failure(CLASS_NOT_FOUND_MESSAGE)

        count = await db.scalar(
            select(func.count()).select_from(Document).where(Document.class_id == class_id)
        )
    except SQLAlchemyError as e:
        logger.exception("Failed to check AI preconditions for class %s", class_id)
        await db.rollback()
        return AIQueryResult.failure(backend_error_message(e, "Failed to load class materials."))

    if not count:
        return AIQueryResult.failure(NO_DOCUMENTS_MESSAGE)

    logger.info("Querying AI service for class %s: %s...", class_id, question[:50])
    result = await gateway.query(str(class_id), question, str(user.id))

    if result.success:
        logger.info(
            "AI answer for class %s: %d chars, %d sources, confidence %s",
            class_id, len(result.answer), len(result.sources), result.confidence,
        )
        return result.model_copy(update={"class_name": cls.name})
    return result


# Singleton instance
ai_gateway = AIGatewayClient()
