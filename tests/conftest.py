"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; tests never reach real services
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_S3_BUCKET", "study-group-test")
os.environ.setdefault("AI_SERVICE_URL", "http://ai.test")

from collections.abc import AsyncGenerator
from uuid import uuid4

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studygroup.api.deps import (
    get_ai_gateway,
    get_cache_notifier,
    get_current_user,
    get_document_storage,
)
from studygroup.db.base import Base
from studygroup.db.models import Class, Document, User, UserRole
from studygroup.db.session import get_db
from studygroup.main import app
from studygroup.services.ai_cache import CacheInvalidationNotifier
from studygroup.services.ai_gateway import AIGatewayClient
from studygroup.services.storage import StorageError

AI_BASE_URL = "http://ai.test"


class FakeStorage:
    """In-memory stand-in for DocumentStorage that records every call."""

    def __init__(self, fail_upload: bool = False, fail_remove: bool = False):
        self.fail_upload = fail_upload
        self.fail_remove = fail_remove
        self.objects: dict[str, bytes] = {}
        self.uploads: list[str] = []
        self.removed: list[str] = []

    async def upload(self, storage_path: str, data: bytes, content_type: str) -> None:
        self.uploads.append(storage_path)
        if self.fail_upload:
            raise StorageError("simulated storage outage")
        if storage_path in self.objects:
            raise StorageError(f"An object already exists at {storage_path}")
        self.objects[storage_path] = data

    async def remove(self, storage_path: str) -> None:
        self.removed.append(storage_path)
        if self.fail_remove:
            raise StorageError("simulated storage outage")
        self.objects.pop(storage_path, None)

    async def create_signed_url(self, storage_path: str, expires_in: int) -> str:
        return f"https://storage.test/{storage_path}?expires={expires_in}"

    def exists(self, storage_path: str) -> bool:
        return storage_path in self.objects


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def engine():
    """Fresh in-memory SQLite database per test, foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session


# =============================================================================
# DOMAIN FACTORIES
# =============================================================================


@pytest.fixture
def make_user(db_session):
    async def _make_user(role: UserRole = UserRole.STUDENT, full_name: str = "Test User") -> User:
        user = User(
            email=f"{uuid4().hex[:10]}@example.edu",
            full_name=full_name,
            role=role.value,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
async def professor(make_user) -> User:
    return await make_user(UserRole.PROFESSOR, "Prof. Ada")


@pytest.fixture
async def student(make_user) -> User:
    return await make_user(UserRole.STUDENT, "Sam Student")


@pytest.fixture
def make_class(db_session):
    async def _make_class(owner: User, name: str = "Algorithms", code: str | None = None) -> Class:
        cls = Class(owner_id=owner.id, name=name, code=code or uuid4().hex[:6].upper())
        db_session.add(cls)
        await db_session.commit()
        await db_session.refresh(cls)
        return cls

    return _make_class


@pytest.fixture
def make_document(db_session):
    async def _make_document(owner: User, cls: Class, title: str = "Lecture notes") -> Document:
        document = Document(
            user_id=owner.id,
            class_id=cls.id,
            title=title,
            file_type="pdf",
            file_size=1024,
            storage_path=f"{owner.id}/{cls.id}/{uuid4().hex}_notes.pdf",
        )
        db_session.add(document)
        await db_session.commit()
        await db_session.refresh(document)
        return document

    return _make_document


# =============================================================================
# EXTERNAL SERVICES
# =============================================================================


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def ai_requests() -> list[httpx.Request]:
    """Every request the fake AI service received."""
    return []


@pytest.fixture
def ai_handler():
    """Default AI service behaviour; override in a test module to change it."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/query":
            return httpx.Response(
                200,
                json={
                    "answer": "Recursion is...",
                    "sources": [{"file_name": "notes.pdf", "page": 3}],
                    "confidence": 0.82,
                },
            )
        return httpx.Response(200, json={"status": "ok"})

    return handler


@pytest.fixture
def ai_transport(ai_requests, ai_handler) -> httpx.MockTransport:
    def record(request: httpx.Request) -> httpx.Response:
        ai_requests.append(request)
        return ai_handler(request)

    return httpx.MockTransport(record)


@pytest.fixture
def gateway(ai_transport) -> AIGatewayClient:
    return AIGatewayClient(base_url=AI_BASE_URL, transport=ai_transport)


@pytest.fixture
def notifier(ai_transport) -> CacheInvalidationNotifier:
    return CacheInvalidationNotifier(base_url=AI_BASE_URL, transport=ai_transport)


# =============================================================================
# HTTP CLIENT
# =============================================================================


@pytest.fixture
def login():
    """Make the given user the authenticated caller for subsequent requests."""

    def _login(user: User) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return _login


@pytest.fixture
async def client(db_session, storage, gateway, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_document_storage] = lambda: storage
    app.dependency_overrides[get_ai_gateway] = lambda: gateway
    app.dependency_overrides[get_cache_notifier] = lambda: notifier

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await notifier.drain()
    app.dependency_overrides.clear()
