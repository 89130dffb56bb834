"""Profile management: username, timezone and referral redemption."""

from __future__ import annotations

from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from noizlabs.db.models import Profile
from noizlabs.errors import AlreadyDone, NotFound, ValidationFailed
from noizlabs.users.referral_codes import normalize_referral_code

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def validate_timezone(name: str) -> str:
    """Return ``name`` if it is a known IANA zone."""
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        msg = f"Unknown timezone: {name}"
        raise ValidationFailed(msg) from e
    return name


async def update_profile(
    db: AsyncSession,
    profile: Profile,
    username: str | None = None,
    timezone_name: str | None = None,
) -> Profile:
    """
    Update username and/or timezone.

    Raises:
        AlreadyDone: ``username_taken`` if another profile holds the username.
        ValidationFailed: Unknown timezone.
    """
    if username is not None and username != profile.username:
        result = await db.execute(
            select(Profile.id).where(Profile.username == username).where(Profile.id != profile.id)
        )
        if result.scalar_one_or_none() is not None:
            msg = "Username already taken"
            raise AlreadyDone(msg, code="username_taken")
        profile.username = username

    if timezone_name is not None:
        profile.timezone = validate_timezone(timezone_name)

    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        msg = "Username already taken"
        raise AlreadyDone(msg, code="username_taken") from e
    return profile


async def redeem_referral_code(db: AsyncSession, profile: Profile, code: str) -> Profile:
    """
    Link ``profile`` to the owner of ``code``. Allowed once per profile.

    Returns:
        The referrer's profile.

    Raises:
        AlreadyDone: The profile already has a referrer.
        NotFound: No profile owns the code.
        ValidationFailed: Blank code, or the caller's own code.
    """
    if profile.referred_by is not None:
        msg = "You've already used a referral code"
        raise AlreadyDone(msg, code="already_referred")

    normalized = normalize_referral_code(code)
    if not normalized:
        msg = "Please enter a referral code"
        raise ValidationFailed(msg)

    result = await db.execute(select(Profile).where(Profile.referral_code == normalized))
    referrer = result.scalar_one_or_none()
    if referrer is None:
        msg = "Referral code not found"
        raise NotFound(msg)
    if referrer.wallet_address == profile.wallet_address:
        msg = "You can't use your own referral code"
        raise ValidationFailed(msg, code="own_referral_code")

    # Compare-and-set so two concurrent redemptions cannot both land.
    linked = await db.execute(
        update(Profile)
        .where(Profile.id == profile.id, Profile.referred_by.is_(None))
        .values(referred_by=referrer.wallet_address)
        .execution_options(synchronize_session=False)
    )
    if linked.rowcount != 1:
        msg = "You've already used a referral code"
        raise AlreadyDone(msg, code="already_referred")

    await db.execute(
        update(Profile)
        .where(Profile.id == referrer.id)
        .values(referral_count=Profile.referral_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(profile)
    await db.refresh(referrer)
    logger.info("referral_redeemed", wallet=profile.wallet_address, referrer=referrer.wallet_address)
    return referrer
