"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from noizlabs.auth.schemas import USERNAME_PATTERN
from noizlabs.schemas import CamelModel


class ProfileResponse(CamelModel):
    id: str
    wallet_address: str
    username: str
    referral_code: str
    referred_by: str | None
    referral_count: int
    timezone: str
    points: int
    created_at: datetime


class ProfileUpdateRequest(CamelModel):
    username: str | None = Field(None, pattern=USERNAME_PATTERN)
    timezone: str | None = Field(None, min_length=1, max_length=64)


class ReferralRedeemRequest(CamelModel):
    code: str = Field(..., min_length=1, max_length=16)


class ReferralRedeemResponse(CamelModel):
    success: bool = True
    referred_by: str
    message: str
