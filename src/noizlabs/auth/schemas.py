"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from noizlabs.schemas import CamelModel

USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,32}$"


class WalletAuthRequest(CamelModel):
    """Signed challenge from the wallet adapter.

    Fields are optional here so that a missing one is reported as a plain
    400 before any verification work, not as a schema error.
    """

    wallet_address: str | None = None
    signature: str | None = None
    message: str | None = None
    username: str | None = Field(None, pattern=USERNAME_PATTERN)


class WalletAuthResponse(CamelModel):
    success: bool = True
    user_id: str
    wallet_address: str
    is_new_user: bool
    properties: dict[str, Any]


class SessionRequest(BaseModel):
    """Exchange a magic-link token hash for an access token."""

    token_hash: str = Field(..., min_length=16, max_length=128)


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str
    wallet_address: str
