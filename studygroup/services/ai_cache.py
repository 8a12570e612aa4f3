"""
Best-effort cache invalidation on the AI service.

When a class's documents change, the AI service is told to drop what it has
indexed for that class so the next query rebuilds it. Failures never reach
the operation that triggered the invalidation: they are logged on their own
channel and handed to any registered failure listeners. Nothing is retried
or queued; the next successful query reindexes anyway.
"""

import asyncio
import logging
from collections.abc import Callable
from uuid import UUID

import httpx

from studygroup.config import get_settings

# Dedicated channel so invalidation failures can be routed separately
logger = logging.getLogger("studygroup.ai.cache_invalidation")
settings = get_settings()


class CacheInvalidationError(Exception):
    """A failed invalidation, as delivered to failure listeners."""

    def __init__(self, class_id: str, detail: str):
        super().__init__(f"Cache invalidation failed for class {class_id}: {detail}")
        self.class_id = class_id
        self.detail = detail


FailureListener = Callable[[CacheInvalidationError], None]


class CacheInvalidationNotifier:
    """Sends `POST /invalidate-cache/{class_id}` to the AI service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.ai_service_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ai_cache_timeout_seconds
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[FailureListener] = []

    @property
    def pending(self) -> int:
        """Number of detached invalidations still running."""
        return len(self._tasks)

    def add_failure_listener(self, listener: FailureListener) -> Callable[[], None]:
        """Register a listener for failed invalidations. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def invalidate(self, class_id: UUID | str) -> bool:
        """Invalidate and wait for the outcome. Returns False on any failure; never raises."""
        class_id = str(class_id)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(f"/invalidate-cache/{class_id}")
        except httpx.HTTPError as e:
            self._report_failure(class_id, f"{type(e).__name__}: {e}")
            return False

        if not response.is_success:
            self._report_failure(class_id, f"HTTP {response.status_code}")
            return False

        logger.info("Invalidated AI cache for class %s", class_id)
        return True

    def notify(self, class_id: UUID | str) -> asyncio.Task:
        """
        Start a detached invalidation and return immediately.

        Must be called from a running event loop. The task is kept alive
        until it finishes; callers never need to await it.
        """
        task = asyncio.create_task(self.invalidate(class_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every detached invalidation to finish (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _report_failure(self, class_id: str, detail: str) -> None:
        error = CacheInvalidationError(class_id, detail)
        logger.warning("%s", error)
        for listener in list(self._listeners):
            try:
                listener(error)
            except Exception:
                logger.exception("Cache invalidation failure listener raised")


# Singleton instance
cache_notifier = CacheInvalidationNotifier()
