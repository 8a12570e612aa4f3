"""HTTP client for the Study Group API, as used by chat sessions and scripts."""

import logging
from uuid import UUID

import httpx

from studygroup.schemas.ai import AIQueryResult
from studygroup.schemas.classes import ClassSummary

logger = logging.getLogger(__name__)

# Longer than the server's own wait on the AI service so its timeout message arrives first
DEFAULT_TIMEOUT_SECONDS = 130.0


class StudyGroupClient:
    """
    Thin async wrapper over the API.

    `ask` never raises for transport or HTTP failures; like the server's AI
    route it returns a failed AIQueryResult instead.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "StudyGroupClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def ask(self, class_id: UUID | str, question: str) -> AIQueryResult:
        """POST a question to the class's assistant."""
        try:
            response = await self._client.post(
                f"/classes/{class_id}/ai/query",
                json={"question": question},
            )
        except httpx.TimeoutException:
            logger.warning("Study Group API timed out answering for class %s", class_id)
            return AIQueryResult.failure("The request timed out. Please try again.")
        except httpx.HTTPError as e:
            logger.error("Study Group API unreachable: %s", str(e))
            return AIQueryResult.failure(f"Unable to reach the Study Group API: {type(e).__name__}")

        if response.status_code == 401:
            return AIQueryResult.failure("You must be logged in to use AI features")
        if not response.is_success:
            return AIQueryResult.failure(f"Unexpected error ({response.status_code})")

        try:
            return AIQueryResult.model_validate(response.json())
        except ValueError:
            logger.error("Unreadable AI query response for class %s", class_id)
            return AIQueryResult.failure("Received an unreadable response from the server")

    async def reindex(self, class_id: UUID | str) -> bool:
        """Ask the server to drop the AI service's cache for a class."""
        response = await self._client.post(f"/classes/{class_id}/ai/reindex")
        response.raise_for_status()
        return bool(response.json().get("success"))

    async def list_classes(self) -> list[ClassSummary]:
        response = await self._client.get("/classes/")
        response.raise_for_status()
        return [ClassSummary.model_validate(item) for item in response.json()]
