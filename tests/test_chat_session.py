"""Tests for the client-side chat session state machine."""

import asyncio

import pytest
from pydantic import ValidationError

from studygroup.client.chat import (
    ChatMessage,
    ChatRole,
    ChatSession,
    ChatState,
    PendingExchange,
    format_confidence,
    format_source,
)
from studygroup.schemas.ai import AIQueryResult, SourceCitation


def answering(answer_for=lambda question: f"Answer to {question}"):
    async def ask(class_id: str, question: str) -> AIQueryResult:
        return AIQueryResult(success=True, answer=answer_for(question))

    return ask


class GatedAsk:
    """Ask function that blocks until released, to observe the loading state."""

    def __init__(self):
        self.release = asyncio.Event()
        self.calls: list[str] = []

    async def __call__(self, class_id: str, question: str) -> AIQueryResult:
        self.calls.append(question)
        await self.release.wait()
        return AIQueryResult(success=True, answer="done")


async def test_example_scenario():
    async def ask(class_id: str, question: str) -> AIQueryResult:
        return AIQueryResult(
            success=True,
            answer="Recursion is...",
            sources=[SourceCitation(file_name="notes.pdf", page=3)],
            confidence=0.82,
        )

    session = ChatSession("c1", ask)
    await session.submit("What is recursion?")

    assert len(session.messages) == 2
    user_message, reply = session.messages
    assert user_message.role == ChatRole.USER
    assert user_message.content == "What is recursion?"
    assert reply.role == ChatRole.ASSISTANT
    assert reply.content == "Recursion is..."
    assert len(reply.sources) == 1
    assert reply.source_labels == ["notes.pdf (p. 3)"]
    assert reply.confidence_label == "82%"
    assert session.state == ChatState.IDLE


async def test_sequential_questions_interleave():
    session = ChatSession("c1", answering())

    await session.submit("first")
    await session.submit("second")

    assert [(m.role, m.content) for m in session.messages] == [
        (ChatRole.USER, "first"),
        (ChatRole.ASSISTANT, "Answer to first"),
        (ChatRole.USER, "second"),
        (ChatRole.ASSISTANT, "Answer to second"),
    ]


async def test_submit_while_loading_is_ignored():
    ask = GatedAsk()
    session = ChatSession("c1", ask)

    in_flight = asyncio.create_task(session.submit("first"))
    await asyncio.sleep(0)
    assert session.state == ChatState.LOADING
    assert len(session.messages) == 1

    assert await session.submit("second") is None
    assert len(session.messages) == 1
    assert ask.calls == ["first"]

    ask.release.set()
    await in_flight
    assert session.state == ChatState.IDLE
    assert len(session.messages) == 2


async def test_blank_question_is_ignored():
    session = ChatSession("c1", answering())

    assert await session.submit("   ") is None
    assert session.messages == ()


async def test_failed_result_appends_one_error_message():
    errors = []

    async def ask(class_id: str, question: str) -> AIQueryResult:
        return AIQueryResult.failure("Unable to connect to AI service.")

    session = ChatSession("c1", ask, on_error=errors.append)
    reply = await session.submit("hello")

    assert len(session.messages) == 2
    assert reply.is_error is True
    assert reply.role == ChatRole.ASSISTANT
    assert reply.content.startswith("Error: ")
    assert "Unable to connect" in reply.content
    assert errors == ["Unable to connect to AI service."]


async def test_raising_ask_becomes_error_message():
    async def ask(class_id: str, question: str) -> AIQueryResult:
        raise RuntimeError("network down")

    session = ChatSession("c1", ask)
    reply = await session.submit("hello")

    assert reply.is_error is True
    assert "network down" in reply.content
    assert len(session.messages) == 2
    assert session.state == ChatState.IDLE


async def test_callbacks_fire_for_each_append_and_answer():
    appended = []
    answers = []
    session = ChatSession("c1", answering(), on_append=appended.append, on_answer=answers.append)

    await session.submit("q")

    assert [m.role for m in appended] == [ChatRole.USER, ChatRole.ASSISTANT]
    assert answers == [appended[1]]


async def test_clear_empties_history():
    session = ChatSession("c1", answering())
    await session.submit("q")

    assert session.clear() is True
    assert session.messages == ()


async def test_clear_is_refused_while_loading():
    ask = GatedAsk()
    session = ChatSession("c1", ask)
    in_flight = asyncio.create_task(session.submit("q"))
    await asyncio.sleep(0)

    assert session.clear() is False
    assert len(session.messages) == 1

    ask.release.set()
    await in_flight


async def test_messages_are_immutable():
    session = ChatSession("c1", answering())
    await session.submit("q")

    with pytest.raises(ValidationError):
        session.messages[0].content = "edited"


def test_pending_exchange_resolves_once():
    question = ChatMessage(id="user-1", role=ChatRole.USER, content="q")
    reply = ChatMessage(id="assistant-1", role=ChatRole.ASSISTANT, content="a")
    exchange = PendingExchange(question)

    exchange.resolve(reply)
    assert exchange.resolved

    with pytest.raises(RuntimeError):
        exchange.resolve(reply)


@pytest.mark.parametrize(
    "confidence, expected",
    [(0.82, "82%"), (1.0, "100%"), (0.0, "0%"), (0.456, "46%"), (0.125, "13%")],
)
def test_format_confidence(confidence, expected):
    assert format_confidence(confidence) == expected


def test_format_source_without_page():
    assert format_source(SourceCitation(file_name="slides.pptx")) == "slides.pptx"
