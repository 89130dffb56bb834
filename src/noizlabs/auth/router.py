"""Authentication router: /api/v1/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from noizlabs.auth.base58 import is_solana_address
from noizlabs.auth.schemas import SessionRequest, SessionResponse, WalletAuthRequest, WalletAuthResponse
from noizlabs.auth.service import create_magic_link, exchange_magic_link, get_or_create_profile, verify_sign_in
from noizlabs.database import get_session
from noizlabs.errors import ValidationFailed
from noizlabs.middleware.client_ip import get_client_ip
from noizlabs.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/wallet", response_model=WalletAuthResponse)
async def authenticate_wallet(
    body: WalletAuthRequest,
    request: Request,
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
    db: AsyncSession = Depends(get_session),
) -> WalletAuthResponse:
    """Verify a wallet signature, create the profile on first sign-in, mint a login link."""
    if not body.wallet_address or not body.signature or not body.message:
        msg = "Missing required fields"
        raise ValidationFailed(msg)
    if not is_solana_address(body.wallet_address):
        msg = "Invalid wallet address"
        raise ValidationFailed(msg, code="invalid_wallet")

    verify_sign_in(body.wallet_address, body.signature, body.message)

    profile, created = await get_or_create_profile(
        db,
        body.wallet_address,
        get_client_ip(request),
        username=body.username,
    )
    await db.commit()

    properties = await create_magic_link(redis, profile)
    logger.info("wallet_authenticated", wallet=profile.wallet_address, is_new_user=created)
    return WalletAuthResponse(
        user_id=profile.id,
        wallet_address=profile.wallet_address,
        is_new_user=created,
        properties=properties,
    )


@router.post("/session", response_model=SessionResponse)
async def create_session(
    body: SessionRequest,
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
    db: AsyncSession = Depends(get_session),
) -> SessionResponse:
    """Exchange a one-time magic-link token for a bearer access token."""
    session = await exchange_magic_link(redis, db, body.token_hash)
    return SessionResponse(
        access_token=session.access_token,
        expires_in=session.expires_in,
        user_id=session.profile_id,
        wallet_address=session.wallet_address,
    )
