"""
FastAPI dependencies: who is calling, and which clients serve the request.

Sessions are JWTs signed with JWT_SECRET_KEY, carried in the `access_token`
HttpOnly cookie set at login or in an `Authorization: Bearer` header. The
token only names the user; the profile (and with it the role) is read from
the database on every request.

Storage, the AI gateway and the cache notifier are resolved through
dependencies rather than imported by routes, so tests can override them.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.config import get_settings
from studygroup.db.models import Class, User
from studygroup.db.session import get_db
from studygroup.services import ai_gateway, cache_notifier, document_storage
from studygroup.services.ai_cache import CacheInvalidationNotifier
from studygroup.services.ai_gateway import AIGatewayClient
from studygroup.services.classes import user_can_access_class
from studygroup.services.storage import DocumentStorage

settings = get_settings()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# =============================================================================
# SESSION TOKENS
# =============================================================================


def create_access_token(user_id: UUID) -> str:
    """Sign a session token for `user_id`, valid for JWT_EXPIRE_MINUTES."""
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID | None:
    """User id from a valid token; None for a bad signature, expiry or malformed subject."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return UUID(claims["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """The session cookie if present, else a Bearer header."""
    if access_token:
        return access_token

    scheme, _, credentials = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    raise _unauthorized("Not authenticated")


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Load the caller's profile; 401 for an unusable token or a deleted user."""
    user_id = decode_access_token(token)
    user = await db.get(User, user_id) if user_id is not None else None
    if user is None:
        raise _unauthorized("Could not validate credentials")
    return user


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================


def get_document_storage() -> DocumentStorage:
    return document_storage


def get_ai_gateway() -> AIGatewayClient:
    return ai_gateway


def get_cache_notifier() -> CacheInvalidationNotifier:
    return cache_notifier


CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Storage = Annotated[DocumentStorage, Depends(get_document_storage)]
Gateway = Annotated[AIGatewayClient, Depends(get_ai_gateway)]
Notifier = Annotated[CacheInvalidationNotifier, Depends(get_cache_notifier)]


# =============================================================================
# ACCESS HELPERS
# =============================================================================


async def get_accessible_class_or_404(db: AsyncSession, class_id: UUID, user: User) -> Class:
    """
    Fetch a class the user owns or is enrolled in.

    Returns 404 both when the class does not exist and when the user cannot
    see it, so class identifiers are not confirmed to outsiders.
    """
    cls = await db.get(Class, class_id)
    if cls is None or not await user_can_access_class(db, user.id, cls):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return cls
