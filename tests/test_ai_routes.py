"""Tests for the AI query/reindex routes and the chat flow over HTTP."""

import httpx
from httpx import ASGITransport

from studygroup.client import ChatRole, ChatSession, StudyGroupClient
from studygroup.main import app
from studygroup.services import enrollments
from studygroup.services.ai_gateway import NO_DOCUMENTS_MESSAGE


async def test_query_returns_answer(client, login, professor, make_class, make_document):
    cls = await make_class(professor, name="Algorithms")
    await make_document(professor, cls)
    login(professor)

    response = await client.post(f"/classes/{cls.id}/ai/query", json={"question": "What is recursion?"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["answer"] == "Recursion is..."
    assert body["sources"] == [{"file_name": "notes.pdf", "page": 3, "relevance_score": None}]
    assert body["confidence"] == 0.82
    assert body["class_name"] == "Algorithms"


async def test_query_failures_are_200_envelopes(client, login, professor, make_class, ai_requests):
    cls = await make_class(professor)
    login(professor)

    response = await client.post(f"/classes/{cls.id}/ai/query", json={"question": "Anything?"})

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["error"] == NO_DOCUMENTS_MESSAGE
    assert response.json()["answer"] == ""
    assert ai_requests == []


async def test_reindex_invalidates_cache(client, login, professor, make_class, ai_requests):
    cls = await make_class(professor)
    login(professor)

    response = await client.post(f"/classes/{cls.id}/ai/reindex")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert [r.url.path for r in ai_requests] == [f"/invalidate-cache/{cls.id}"]


async def test_reindex_requires_access(client, login, professor, student, make_class, ai_requests):
    cls = await make_class(professor)
    login(student)

    response = await client.post(f"/classes/{cls.id}/ai/reindex")

    assert response.status_code == 404
    assert ai_requests == []


async def test_chat_session_over_http(client, login, db_session, professor, student, make_class, make_document):
    cls = await make_class(professor)
    await make_document(professor, cls)
    await enrollments.enroll(db_session, student, cls.id)
    login(student)

    async with StudyGroupClient("http://test", transport=ASGITransport(app=app)) as api:
        session = ChatSession(str(cls.id), api.ask)
        await session.submit("What is recursion?")
        await session.submit("And base cases?")

    assert [m.role for m in session.messages] == [
        ChatRole.USER,
        ChatRole.ASSISTANT,
        ChatRole.USER,
        ChatRole.ASSISTANT,
    ]
    assert session.messages[1].content == "Recursion is..."
    assert session.messages[1].confidence_label == "82%"
    assert session.messages[1].source_labels == ["notes.pdf (p. 3)"]


async def test_client_reports_unauthenticated():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"detail": "Not authenticated"}))

    async with StudyGroupClient("http://test", transport=transport) as api:
        result = await api.ask("c1", "hello")

    assert result.success is False
    assert result.error == "You must be logged in to use AI features"


async def test_client_reports_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    async with StudyGroupClient("http://test", transport=httpx.MockTransport(handler)) as api:
        result = await api.ask("c1", "hello")

    assert result.success is False
    assert "ConnectError" in result.error
