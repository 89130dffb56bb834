"""
Authentication business logic.

Handles wallet sign-in (profile creation with the one-IP-one-wallet Sybil
check) and the one-time magic-link tokens exchanged for a session.
"""

from __future__ import annotations

import hashlib
import json
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from noizlabs.auth.jwt import create_access_token
from noizlabs.auth.solana import check_auth_message, verify_wallet_signature
from noizlabs.config import get_settings
from noizlabs.db.models import Profile, UserPoints
from noizlabs.db.upsert import insert_ignore
from noizlabs.errors import AlreadyDone, Forbidden, Unauthorized
from noizlabs.middleware.client_ip import UNKNOWN_IP
from noizlabs.users.referral_codes import generate_unique_referral_code

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MAGIC_LINK_PREFIX = "auth:magiclink:"


# ---------------------------------------------------------------------------
# Profile queries
# ---------------------------------------------------------------------------


async def get_profile_by_id(db: AsyncSession, profile_id: str) -> Profile | None:
    """Fetch a profile by ID."""
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def get_profile_by_wallet(db: AsyncSession, wallet_address: str) -> Profile | None:
    """Fetch a profile by wallet address."""
    result = await db.execute(select(Profile).where(Profile.wallet_address == wallet_address))
    return result.scalar_one_or_none()


def wallet_email(wallet_address: str) -> str:
    """Synthetic per-wallet email alias used for passwordless sessions."""
    return f"{wallet_address}@{get_settings().wallet_email_domain}"


def default_username(wallet_address: str) -> str:
    return f"User_{wallet_address[:8]}"


# ---------------------------------------------------------------------------
# Wallet sign-in
# ---------------------------------------------------------------------------


def verify_sign_in(wallet_address: str, signature: str, message: str) -> None:
    """
    Prove the caller controls ``wallet_address``.

    Raises:
        Unauthorized: On a bad signature, or a message naming another wallet
            or falling outside the replay window.
    """
    if not verify_wallet_signature(wallet_address, message, signature):
        logger.warning("wallet_signature_invalid", wallet=wallet_address)
        msg = "Invalid signature"
        raise Unauthorized(msg)

    settings = get_settings()
    try:
        check_auth_message(
            message,
            wallet_address,
            max_age_seconds=settings.wallet_message_max_age_seconds,
            future_skew_seconds=settings.wallet_message_future_skew_seconds,
        )
    except ValueError as e:
        logger.warning("wallet_message_rejected", wallet=wallet_address, reason=str(e))
        raise Unauthorized(str(e)) from e


async def get_or_create_profile(
    db: AsyncSession,
    wallet_address: str,
    ip_address: str,
    username: str | None = None,
) -> tuple[Profile, bool]:
    """
    Get the wallet's profile or create it on first sign-in.

    Returns:
        Tuple of (profile, created).

    Raises:
        Forbidden: ``ip_already_bound`` when a new wallet arrives from an IP
            that already registered a different wallet.
        AlreadyDone: ``username_taken`` when the requested username exists.
    """
    profile = await get_profile_by_wallet(db, wallet_address)
    if profile is not None:
        return profile, False

    settings = get_settings()
    if settings.sybil_check_enabled and ip_address != UNKNOWN_IP:
        result = await db.execute(
            select(Profile.wallet_address).where(Profile.ip_address == ip_address).limit(1)
        )
        bound_wallet = result.scalar_one_or_none()
        if bound_wallet is not None:
            logger.warning("sybil_rejected", wallet=wallet_address, ip=ip_address, bound_wallet=bound_wallet)
            msg = "This IP address is already associated with another wallet"
            raise Forbidden(msg, code="ip_already_bound")

    chosen = username or default_username(wallet_address)
    taken = await db.execute(select(Profile.id).where(Profile.username == chosen))
    if taken.scalar_one_or_none() is not None:
        msg = "Username already taken"
        raise AlreadyDone(msg, code="username_taken")

    profile = Profile(
        wallet_address=wallet_address,
        username=chosen,
        referral_code=await generate_unique_referral_code(db),
        ip_address=None if ip_address == UNKNOWN_IP else ip_address,
    )
    db.add(profile)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race against a concurrent sign-in for the same wallet or username.
        await db.rollback()
        msg = "Wallet or username already registered"
        raise AlreadyDone(msg, code="profile_conflict") from e

    await insert_ignore(db, UserPoints, {"wallet_address": wallet_address, "points": 0}, ["wallet_address"])
    logger.info("profile_created", profile_id=profile.id, wallet=wallet_address, username=chosen)
    return profile, True


# ---------------------------------------------------------------------------
# Magic-link sessions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Session:
    access_token: str
    expires_in: int
    profile_id: str
    wallet_address: str


async def create_magic_link(redis: Redis, profile: Profile) -> dict[str, Any]:
    """
    Mint a one-time login token for ``profile``.

    Only the SHA-256 of the random token leaves the server; it is the value
    the client exchanges at ``/auth/session`` and the Redis key suffix.
    """
    settings = get_settings()
    raw_token = secrets.token_urlsafe(32)
    hashed_token = hashlib.sha256(raw_token.encode()).hexdigest()
    email = wallet_email(profile.wallet_address)

    await redis.set(
        f"{MAGIC_LINK_PREFIX}{hashed_token}",
        json.dumps({"profile_id": profile.id, "wallet": profile.wallet_address, "email": email}),
        ex=settings.magic_link_ttl_seconds,
    )
    return {
        "hashed_token": hashed_token,
        "verification_type": "magiclink",
        "email": email,
        "expires_in": settings.magic_link_ttl_seconds,
    }


async def exchange_magic_link(redis: Redis, db: AsyncSession, token_hash: str) -> Session:
    """
    Consume a magic-link token (GETDEL, so exactly one exchange succeeds).

    Raises:
        Unauthorized: Unknown, expired, or already used token.
    """
    stored = await redis.getdel(f"{MAGIC_LINK_PREFIX}{token_hash}")
    if stored is None:
        msg = "Login link is invalid or has expired"
        raise Unauthorized(msg)

    claims = json.loads(stored)
    profile = await get_profile_by_id(db, claims["profile_id"])
    if profile is None:
        msg = "Profile not found"
        raise Unauthorized(msg)

    settings = get_settings()
    token = create_access_token(profile.id, profile.wallet_address, claims["email"])
    logger.info("session_issued", profile_id=profile.id, wallet=profile.wallet_address)
    return Session(
        access_token=token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        profile_id=profile.id,
        wallet_address=profile.wallet_address,
    )
