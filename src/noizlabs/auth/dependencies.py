"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.auth.jwt import verify_token
from noizlabs.auth.service import get_profile_by_id
from noizlabs.database import get_session
from noizlabs.db.models import Profile
from noizlabs.errors import Unauthorized

_bearer = HTTPBearer(auto_error=False)


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    """
    Extract and verify the bearer JWT, return the caller's profile.

    The wallet used by every downstream handler comes from this profile,
    never from a request body.
    """
    if credentials is None:
        msg = "Missing bearer token"
        raise Unauthorized(msg)
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise Unauthorized(str(e)) from e

    profile = await get_profile_by_id(db, str(payload["sub"]))
    if profile is None:
        msg = "Profile not found"
        raise Unauthorized(msg)
    return profile
