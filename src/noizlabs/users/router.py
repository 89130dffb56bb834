"""User management router: /api/v1/users/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.auth.dependencies import get_current_profile
from noizlabs.database import get_session
from noizlabs.db.models import Profile
from noizlabs.points.ledger import get_balance
from noizlabs.users.schemas import (
    ProfileResponse,
    ProfileUpdateRequest,
    ReferralRedeemRequest,
    ReferralRedeemResponse,
)
from noizlabs.users.service import redeem_referral_code, update_profile

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


async def _profile_response(db: AsyncSession, profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        wallet_address=profile.wallet_address,
        username=profile.username,
        referral_code=profile.referral_code,
        referred_by=profile.referred_by,
        referral_count=profile.referral_count,
        timezone=profile.timezone,
        points=await get_balance(db, profile.wallet_address),
        created_at=profile.created_at,
    )


@router.get("/me", response_model=ProfileResponse)
async def get_profile(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Get own profile with current balance."""
    return await _profile_response(db, profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Update username and/or timezone."""
    profile = await update_profile(db, profile, username=body.username, timezone_name=body.timezone)
    await db.commit()
    return await _profile_response(db, profile)


@router.post("/me/referral", response_model=ReferralRedeemResponse)
async def redeem_referral(
    body: ReferralRedeemRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ReferralRedeemResponse:
    """Attach a referrer by code. Both sides are paid when the caller creates a first category."""
    referrer = await redeem_referral_code(db, profile, body.code)
    await db.commit()
    return ReferralRedeemResponse(
        referred_by=referrer.wallet_address,
        message="Referral code saved! Create your first category to earn points for you and your referrer.",
    )
