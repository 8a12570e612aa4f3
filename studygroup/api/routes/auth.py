"""
Authentication and profile routes.

Endpoints:
- POST /auth/google - Exchange Google id_token for session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile
- PATCH /auth/me - Update username and full name

Auth Flow:
1. Frontend performs Google OAuth flow and receives an id_token
2. Frontend POSTs id_token (and, for a first login, the chosen role) to /auth/google
3. Backend verifies id_token with Google's public keys
4. Backend upserts user + auth_identity
5. Backend returns JWT (in cookie and response body)
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Response, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studygroup.api.deps import CurrentUser, DbSession, create_access_token
from studygroup.api.envelopes import respond
from studygroup.config import get_settings
from studygroup.db.models import AuthIdentity, User, UserRole
from studygroup.schemas.auth import GoogleAuthRequest, TokenResponse
from studygroup.schemas.user import ProfileResult, ProfileUpdate, UserRead
from studygroup.services import profiles

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()
logger = logging.getLogger(__name__)


def verify_google_id_token(token: str) -> dict:
    """
    Verify a Google id_token and return its claims.

    Checks signature, expiry, audience and issuer. Raises ValueError if any
    check fails.
    """
    idinfo = google_id_token.verify_oauth2_token(
        token,
        google_requests.Request(),
        settings.google_client_id,
    )
    if idinfo.get("iss") not in ["accounts.google.com", "https://accounts.google.com"]:
        raise ValueError("Invalid issuer")
    return idinfo


def _cookie_options() -> dict:
    # Cross-domain deployments need samesite="none" + secure=True
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


async def _sign_in_google_user(db: AsyncSession, claims: dict, role: UserRole) -> User:
    """
    Find or create the profile behind a verified Google identity.

    Lookup order: the linked identity, then a profile with the same verified
    email (which gets the identity linked), then a new profile with `role`.
    """
    subject = claims["sub"]
    email = claims.get("email")
    # Unverified emails could allow account hijacking through linking
    if email and not claims.get("email_verified", False):
        email = None

    identity = await db.scalar(
        select(AuthIdentity)
        .options(selectinload(AuthIdentity.user))
        .where(AuthIdentity.provider == "google", AuthIdentity.provider_user_id == subject)
    )
    if identity is not None:
        identity.last_login_at = datetime.now(timezone.utc)
        identity.email = email or identity.email
        return identity.user

    user = await db.scalar(select(User).where(User.email == email.lower())) if email else None
    if user is None:
        user = User(
            email=email.lower() if email else None,
            full_name=claims.get("name") or email or "Unknown User",
            role=role.value,
        )
        db.add(user)
        await db.flush()
        logger.info("Created %s profile %s from Google sign-in", role.value, user.id)

    db.add(AuthIdentity(user_id=user.id, provider="google", provider_user_id=subject, email=email))
    return user


@router.post("/google", response_model=TokenResponse)
async def google_login(
    request: GoogleAuthRequest,
    response: Response,
    db: DbSession,
) -> TokenResponse:
    """
    Exchange Google id_token for a session JWT.

    A first login creates the profile with the requested role; later logins
    keep the stored role.
    """
    try:
        claims = verify_google_id_token(request.id_token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Google id_token: {e}",
        )

    user = await _sign_in_google_user(db, claims, request.role)
    await db.commit()

    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60
    response.set_cookie(key="access_token", value=access_token, max_age=expires_in, **_cookie_options())

    return TokenResponse(access_token=access_token, expires_in=expires_in)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication session.

    Only the cookie is cleared; a JWT held elsewhere stays valid until expiry.
    """
    response.delete_cookie(key="access_token", **_cookie_options())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the current authenticated user's profile."""
    return UserRead.model_validate(current_user)


@router.patch("/me", response_model=ProfileResult)
async def update_me(
    data: ProfileUpdate,
    response: Response,
    current_user: CurrentUser,
    db: DbSession,
):
    """Update username and full name."""
    result = await profiles.update_profile(
        db, current_user, username=data.username, full_name=data.full_name
    )
    return respond(result, response)
