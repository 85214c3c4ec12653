"""
Authentication dependency for FastAPI endpoints.

Provides JWT verification via Supabase auth.get_user() and a FastAPI
dependency that can be used to protect endpoints. The caller's role
(homeowner or provider) comes from profiles.user_type.
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from homebase.models.chat import UserRole
from homebase.services import supabase_client as db

logger = structlog.get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    """Represents a verified authenticated user."""

    id: str
    email: str | None = None
    profile_id: str | None = None
    role: UserRole = UserRole.HOMEOWNER


def role_from_profile(profile: dict | None) -> UserRole:
    """Providers are identified by user_type; everyone else is a homeowner."""
    if profile and profile.get("user_type") == UserRole.PROVIDER.value:
        return UserRole.PROVIDER
    return UserRole.HOMEOWNER


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    """
    FastAPI dependency that verifies a JWT Bearer token via Supabase.

    Raises:
        HTTPException 401: Missing, invalid or expired token.
        HTTPException 503: Supabase client not configured.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    supabase = getattr(request.app.state, "supabase", None)
    if supabase is None:
        raise HTTPException(status_code=503, detail="Authentication service unavailable")

    token = credentials.credentials
    try:
        response = await supabase.auth.get_user(token)
        user = response.user if response else None
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
    except HTTPException:
        raise
    except Exception as e:
        logger.warning("auth_token_verification_failed", error=str(e))
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = str(user.id)
    try:
        profile = await db.get_profile_by_user(supabase, user_id)
    except Exception:
        logger.warning("auth_profile_lookup_failed", user_id=user_id, exc_info=True)
        profile = None

    return AuthenticatedUser(
        id=user_id,
        email=user.email,
        profile_id=profile["id"] if profile else None,
        role=role_from_profile(profile),
    )


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
