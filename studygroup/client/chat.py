"""
Chat session with a class's AI assistant.

A session holds the message history for one class and allows at most one
question in flight. Each submitted question appends exactly one user
message and, once the backend replies, exactly one assistant message: the
answer, or a visibly marked error.

States:
    idle     - ready to accept a question
    loading  - a question is awaiting its reply; submissions are ignored
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from studygroup.schemas.ai import AIQueryResult, SourceCitation

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error: "
DEFAULT_ERROR_MESSAGE = "Failed to get AI response"

AskFunction = Callable[[str, str], Awaitable[AIQueryResult]]


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"


class ChatMessage(BaseModel):
    """One entry of the conversation. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: ChatRole
    content: str
    sources: tuple[SourceCitation, ...] = ()
    confidence: float | None = None
    is_error: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def confidence_label(self) -> str | None:
        if self.confidence is None:
            return None
        return format_confidence(self.confidence)

    @property
    def source_labels(self) -> list[str]:
        return [format_source(source) for source in self.sources]


def format_confidence(confidence: float) -> str:
    """0.82 -> "82%". Halves round up, so 0.125 -> "13%"."""
    return f"{int(confidence * 100 + 0.5)}%"


def format_source(source: SourceCitation) -> str:
    """"notes.pdf (p. 3)", or just the file name when the page is unknown."""
    if source.page is None:
        return source.file_name
    return f"{source.file_name} (p. {source.page})"


def _message_id(role: ChatRole) -> str:
    return f"{role.value}-{uuid.uuid4().hex[:12]}"


class PendingExchange:
    """A submitted question waiting for its single reply."""

    def __init__(self, question: ChatMessage):
        self.question = question
        self.reply: ChatMessage | None = None

    @property
    def resolved(self) -> bool:
        return self.reply is not None

    def resolve(self, reply: ChatMessage) -> ChatMessage:
        if self.reply is not None:
            raise RuntimeError(f"Exchange {self.question.id} already resolved")
        self.reply = reply
        return reply


class ChatSession:
    """
    Conversation with the assistant of one class.

    Args:
        class_id: Class the questions are about
        ask: Coroutine function `(class_id, question) -> AIQueryResult`,
            usually `StudyGroupClient.ask`
        on_append: Called with every message added to the history
        on_error: Called with the error text of a failed exchange
        on_answer: Called with the assistant message of a successful exchange
    """

    def __init__(
        self,
        class_id: str,
        ask: AskFunction,
        *,
        on_append: Callable[[ChatMessage], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        on_answer: Callable[[ChatMessage], None] | None = None,
    ):
        self.class_id = str(class_id)
        self._ask = ask
        self._on_append = on_append
        self._on_error = on_error
        self._on_answer = on_answer
        self._messages: list[ChatMessage] = []
        self._pending: PendingExchange | None = None

    @property
    def state(self) -> ChatState:
        return ChatState.LOADING if self._pending is not None else ChatState.IDLE

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def can_submit(self, question: str) -> bool:
        return self._pending is None and bool(question.strip())

    async def submit(self, question: str) -> ChatMessage | None:
        """
        Ask a question and wait for the reply.

        Blank questions and submissions made while another question is in
        flight are ignored and return None. Otherwise the assistant's reply
        message (answer or error) is returned.
        """
        if not self.can_submit(question):
            return None

        text = question.strip()
        exchange = PendingExchange(
            ChatMessage(id=_message_id(ChatRole.USER), role=ChatRole.USER, content=text)
        )
        self._pending = exchange
        self._append(exchange.question)

        try:
            result = await self._ask(self.class_id, text)
        except asyncio.CancelledError:
            self._finish(exchange, self._error_message("The request was cancelled."))
            raise
        except Exception as e:
            logger.exception("AI query for class %s raised", self.class_id)
            return self._finish(exchange, self._error_message(f"{DEFAULT_ERROR_MESSAGE}: {e}"))

        if result.success:
            reply = ChatMessage(
                id=_message_id(ChatRole.ASSISTANT),
                role=ChatRole.ASSISTANT,
                content=result.answer,
                sources=tuple(result.sources),
                confidence=result.confidence,
            )
        else:
            reply = self._error_message(result.error or DEFAULT_ERROR_MESSAGE)
        return self._finish(exchange, reply)

    def clear(self) -> bool:
        """Drop the history. Refused (returns False) while a question is in flight."""
        if self._pending is not None:
            return False
        self._messages.clear()
        return True

    def _error_message(self, error: str) -> ChatMessage:
        return ChatMessage(
            id=_message_id(ChatRole.ASSISTANT),
            role=ChatRole.ASSISTANT,
            content=f"{ERROR_PREFIX}{error}",
            is_error=True,
        )

    def _finish(self, exchange: PendingExchange, reply: ChatMessage) -> ChatMessage:
        exchange.resolve(reply)
        self._pending = None
        self._append(reply)
        if reply.is_error:
            self._emit(self._on_error, reply.content[len(ERROR_PREFIX):])
        else:
            self._emit(self._on_answer, reply)
        return reply

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self._emit(self._on_append, message)

    def _emit(self, callback, payload) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            logger.exception("Chat session callback %r raised", callback)
